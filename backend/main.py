from contextlib import asynccontextmanager
import sqlite3
from datetime import date
from typing import Optional
import logging
import threading

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

import config
import database
import lifecycle
import planner
from calendar_view import build_day, build_month, build_week, format_planner_date
from logging_setup import setup_logging
from models import (
    AppState,
    DayView,
    MonthGrid,
    PlannerRequest,
    Preferences,
    SeriesCreate,
    Task,
    TaskCreate,
    TaskUpdate,
    WeekView,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: migrate, then load everything into memory once
    setup_logging(config.LOG_LEVEL)
    database.init_db()
    state, migrated = database.load_state()
    if migrated:
        # One-time migration: persist back-filled dates right away
        commit(state)
    else:
        app.state.daystream = state
    logger.info("Loaded %d tasks", len(state.tasks))
    yield
    # Shutdown (nothing to do, every mutation is already saved)


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Held from reading the state to committing it, so writes never overlap
_state_lock = threading.Lock()


def get_state() -> AppState:
    return app.state.daystream


def commit(state: AppState) -> None:
    """Replace the in-memory state and save the task collection."""
    app.state.daystream = state
    try:
        database.save_tasks(state.tasks)
    except sqlite3.Error:
        # Fire-and-forget: the in-memory state stays authoritative
        logger.exception("Failed to save tasks")


def commit_preferences(prefs: Preferences) -> None:
    """Replace the in-memory preferences and save them."""
    app.state.daystream = get_state().model_copy(update={"preferences": prefs})
    try:
        database.save_preferences(prefs)
    except sqlite3.Error:
        logger.exception("Failed to save preferences")


def _reference_date(value: Optional[date]) -> date:
    return value or date.today()


@app.get("/tasks")
def get_tasks() -> list[Task]:
    return get_state().tasks


@app.get("/calendar/day")
def get_day(date: Optional[date] = None) -> DayView:
    return build_day(get_state().tasks, _reference_date(date))


@app.get("/calendar/week")
def get_week(date: Optional[date] = None) -> WeekView:
    return build_week(get_state().tasks, _reference_date(date))


@app.get("/calendar/month")
def get_month(date: Optional[date] = None) -> MonthGrid:
    return build_month(get_state().tasks, _reference_date(date))


@app.post("/tasks")
def create_task(task_data: TaskCreate) -> Task:
    with _state_lock:
        state, task = lifecycle.create_single(get_state(), task_data)
        commit(state)
    return task


@app.post("/tasks/series")
def create_series(series_data: SeriesCreate) -> list[Task]:
    with _state_lock:
        state, tasks = lifecycle.create_recurring(get_state(), series_data)
        if tasks:
            commit(state)
    return tasks


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> Task:
    with _state_lock:
        try:
            state, task = lifecycle.update_task(get_state(), task_id, task_data)
        except lifecycle.TaskNotFoundError:
            raise HTTPException(status_code=404, detail="Task not found")
        commit(state)
    return task


@app.post("/tasks/{task_id}/toggle")
def toggle_task(task_id: str) -> Task:
    with _state_lock:
        try:
            state, task = lifecycle.toggle_complete(get_state(), task_id)
        except lifecycle.TaskNotFoundError:
            raise HTTPException(status_code=404, detail="Task not found")
        commit(state)
    return task


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    with _state_lock:
        state, removed = lifecycle.delete_task(get_state(), task_id)
        if not removed:
            return {"status": "not_found"}
        commit(state)
    return {"status": "deleted"}


@app.post("/planner")
async def plan_day(request: PlannerRequest) -> list[Task]:
    """Generate a schedule from free text and add it to the target date."""
    target_date = _reference_date(request.target_date)
    try:
        proposed = await planner.generate_schedule(request.input, format_planner_date(target_date))
    except planner.PlannerBusyError:
        raise HTTPException(status_code=409, detail="A planner request is already running")
    except planner.PlannerNotConfiguredError:
        raise HTTPException(status_code=503, detail="API key not configured")
    except planner.PlannerError as e:
        logger.warning("Planner failed: %s", e)
        raise HTTPException(status_code=502, detail=planner.USER_MESSAGE)

    # Read the state after the await so tasks created meanwhile are kept
    with _state_lock:
        state, tasks = lifecycle.import_from_planner(get_state(), proposed, target_date)
        commit(state)
    return tasks


@app.get("/preferences")
def get_preferences() -> Preferences:
    return get_state().preferences


@app.put("/preferences")
def update_preferences(prefs: Preferences) -> Preferences:
    with _state_lock:
        commit_preferences(prefs)
    return prefs


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
