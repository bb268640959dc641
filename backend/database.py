import sqlite3
import json
import logging
import os
from datetime import date, datetime
from typing import Optional
from contextlib import contextmanager

from pydantic import TypeAdapter, ValidationError

import config
from models import AppState, Preferences, Task, Theme, ViewMode

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

# Keys of the key-value store; same names the browser front-end used
TASKS_KEY = "daystream-tasks"
VIEW_MODE_KEY = "daystream-viewmode"
THEME_KEY = "daystream-theme"

_task_list = TypeAdapter(list[Task])


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    from alembic import command
    from alembic.config import Config

    backend_dir = os.path.dirname(os.path.abspath(__file__))
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", os.path.join(backend_dir, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{DATABASE_PATH}")
    command.upgrade(alembic_cfg, "head")


def get_value(key: str) -> Optional[str]:
    with get_db() as conn:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None


def set_value(key: str, value: str) -> None:
    """Store value under key, replacing whatever was there."""
    now = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
            (key, value, now)
        )
        conn.commit()


def delete_value(key: str) -> None:
    with get_db() as conn:
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()


def _backfill_dates(records: list, today: date) -> tuple[list, int]:
    """Give records saved before tasks had a date today's date. Returns (records, count changed)."""
    migrated = []
    changed = 0
    for record in records:
        if isinstance(record, dict) and not record.get("date"):
            record = {**record, "date": today.isoformat()}
            changed += 1
            logger.info("Back-filled date %s for task %s", record["date"], record.get("id"))
        migrated.append(record)
    return migrated, changed


def _check_unique_ids(tasks: list[Task]) -> None:
    seen = set()
    for task in tasks:
        if task.id in seen:
            raise ValueError(f"duplicate task id {task.id!r}")
        seen.add(task.id)


def read_tasks(today: Optional[date] = None) -> tuple[list[Task], bool]:
    """
    Load the saved task collection and report whether any record was migrated.
    Returns ([], False) if nothing was saved or the saved payload can't be read.
    """
    raw = get_value(TASKS_KEY)
    if not raw:
        return [], False

    try:
        records = json.loads(raw)
        if not isinstance(records, list):
            raise ValueError(f"expected a list of tasks, got {type(records).__name__}")
        records, changed = _backfill_dates(records, today or date.today())
        tasks = _task_list.validate_python(records)
        _check_unique_ids(tasks)
        return tasks, changed > 0
    except (ValueError, ValidationError) as e:
        # JSONDecodeError and ValidationError are both ValueErrors
        logger.warning("Discarding unreadable saved tasks: %s", e)
        return [], False


def load_tasks(today: Optional[date] = None) -> list[Task]:
    return read_tasks(today)[0]


def save_tasks(tasks: list[Task]) -> None:
    """Overwrite the saved collection with tasks."""
    payload = _task_list.dump_json(tasks, by_alias=True).decode()
    set_value(TASKS_KEY, payload)


def load_preferences() -> Preferences:
    """Load view mode and theme, falling back to defaults for unknown values."""
    prefs = Preferences()
    for key, field, enum_type in (
        (VIEW_MODE_KEY, "view_mode", ViewMode),
        (THEME_KEY, "theme", Theme),
    ):
        saved = get_value(key)
        if not saved:
            continue
        try:
            setattr(prefs, field, enum_type(saved))
        except ValueError:
            logger.warning("Ignoring unknown saved %s: %r", key, saved)
    return prefs


def save_preferences(prefs: Preferences) -> None:
    set_value(VIEW_MODE_KEY, prefs.view_mode.value)
    set_value(THEME_KEY, prefs.theme.value)


def load_state(today: Optional[date] = None) -> tuple[AppState, bool]:
    """Load tasks and preferences; the flag says legacy tasks were migrated and need saving."""
    tasks, migrated = read_tasks(today)
    return AppState(tasks=tasks, preferences=load_preferences()), migrated
