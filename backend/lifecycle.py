"""
Task lifecycle operations over an AppState.

Every operation builds a new AppState and leaves the one it was given
untouched, so a failed call never leaves a partial change behind.
"""
import logging
import uuid
from datetime import date

from models import AppState, ProposedTask, SeriesCreate, Task, TaskCreate, TaskUpdate
from recurrence import expand_series_request

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


def generate_id() -> str:
    return str(uuid.uuid4())


def _new_task(payload: TaskCreate, series_id: str | None = None) -> Task:
    return Task(
        **payload.model_dump(),
        id=generate_id(),
        series_id=series_id,
        is_completed=False,
    )


def _with_tasks(state: AppState, tasks: list[Task]) -> AppState:
    return state.model_copy(update={"tasks": tasks})


def _index_of(state: AppState, task_id: str) -> int:
    for index, task in enumerate(state.tasks):
        if task.id == task_id:
            return index
    raise TaskNotFoundError(task_id)


def create_single(state: AppState, payload: TaskCreate) -> tuple[AppState, Task]:
    task = _new_task(payload)
    logger.info("Created task %s on %s", task.id, task.date)
    return _with_tasks(state, [*state.tasks, task]), task


def create_series(state: AppState, payloads: list[TaskCreate]) -> tuple[AppState, list[Task]]:
    """Insert payloads as one series: a shared series_id, one id per instance."""
    if not payloads:
        return state, []
    series_id = generate_id()
    new_tasks = [_new_task(payload, series_id) for payload in payloads]
    logger.info("Created series %s with %d tasks", series_id, len(new_tasks))
    return _with_tasks(state, [*state.tasks, *new_tasks]), new_tasks


def create_recurring(state: AppState, request: SeriesCreate) -> tuple[AppState, list[Task]]:
    """Expand a recurrence request and insert the result as one series."""
    payloads = expand_series_request(request)
    if not payloads:
        logger.info(
            "Recurrence %s from %s to %s produced no tasks",
            request.rule.type.value, request.start_date, request.end_date
        )
    return create_series(state, payloads)


def update_task(state: AppState, task_id: str, changes: TaskUpdate) -> tuple[AppState, Task]:
    """
    Merge the fields explicitly set in changes over the task.
    Raises TaskNotFoundError if no task has task_id.
    """
    index = _index_of(state, task_id)
    fields = changes.model_dump(exclude_unset=True)
    # An explicit null only clears the description; other fields are required
    fields = {key: value for key, value in fields.items() if value is not None or key == "description"}
    updated = state.tasks[index].model_copy(update=fields)
    tasks = list(state.tasks)
    tasks[index] = updated
    return _with_tasks(state, tasks), updated


def delete_task(state: AppState, task_id: str) -> tuple[AppState, bool]:
    """Remove a task. A missing id is a no-op and returns False."""
    tasks = [task for task in state.tasks if task.id != task_id]
    if len(tasks) == len(state.tasks):
        logger.debug("Delete ignored, task %s not found", task_id)
        return state, False
    return _with_tasks(state, tasks), True


def toggle_complete(state: AppState, task_id: str) -> tuple[AppState, Task]:
    index = _index_of(state, task_id)
    current = state.tasks[index]
    return update_task(state, task_id, TaskUpdate(is_completed=not current.is_completed))


def import_from_planner(
    state: AppState,
    proposed: list[ProposedTask],
    target_date: date
) -> tuple[AppState, list[Task]]:
    """Stamp planner suggestions with ids and target_date, then insert them all."""
    new_tasks = [
        Task(**suggestion.model_dump(), id=generate_id(), date=target_date, is_completed=False)
        for suggestion in proposed
    ]
    logger.info("Imported %d planner tasks for %s", len(new_tasks), target_date)
    return _with_tasks(state, [*state.tasks, *new_tasks]), new_tasks
