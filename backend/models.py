import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Duration bounds offered by the task form; the core only requires > 0
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 240

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

# Monday=0 .. Sunday=6, same numbering as date.weekday()
DAY_MAP = {"MON": 0, "TUE": 1, "WED": 2, "THU": 3, "FRI": 4, "SAT": 5, "SUN": 6}


class TaskCategory(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    HEALTH = "Health"
    LEARNING = "Learning"
    OTHER = "Other"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON keys (the stored blob format)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    date: datetime.date
    start_time: str = Field(default="09:00", pattern=TIME_PATTERN)  # HH:MM 24h
    duration_minutes: int = Field(default=60, gt=0)
    category: TaskCategory = TaskCategory.WORK


class Task(TaskCreate):
    id: str = Field(frozen=True)
    series_id: Optional[str] = None  # Shared by instances of one recurrence request
    is_completed: bool = False


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    date: Optional[datetime.date] = None
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    category: Optional[TaskCategory] = None
    is_completed: Optional[bool] = None


class RecurrenceRule(CamelModel):
    type: RecurrenceType = RecurrenceType.DAILY
    weekdays: set[int] = Field(default_factory=set)  # Only used by custom rules

    @field_validator("weekdays", mode="before")
    @classmethod
    def parse_weekdays(cls, value):
        """Accept day codes ("MON".."SUN") as well as 0-6 integers."""
        if value is None:
            return set()
        parsed = set()
        for day in value:
            if isinstance(day, str) and day.strip().upper() in DAY_MAP:
                parsed.add(DAY_MAP[day.strip().upper()])
            else:
                parsed.add(day)
        return parsed

    @field_validator("weekdays")
    @classmethod
    def check_weekday_range(cls, value: set[int]) -> set[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"weekday out of range: {day}")
        return value


class SeriesCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_time: str = Field(default="09:00", pattern=TIME_PATTERN)
    duration_minutes: int = Field(default=60, gt=0)
    category: TaskCategory = TaskCategory.WORK
    start_date: datetime.date
    end_date: datetime.date
    rule: RecurrenceRule


class ProposedTask(CamelModel):
    """A task suggested by the AI planner, before it gets an id and a date."""
    title: str = Field(min_length=1)
    description: Optional[str] = ""
    start_time: str = Field(default="09:00", pattern=TIME_PATTERN)
    duration_minutes: int = Field(gt=0)
    category: TaskCategory = TaskCategory.OTHER


class PlannerRequest(CamelModel):
    input: str = Field(min_length=1)
    target_date: Optional[datetime.date] = None  # Defaults to today


class Preferences(CamelModel):
    view_mode: ViewMode = ViewMode.DAY
    theme: Theme = Theme.DARK


class AppState(CamelModel):
    """Everything the app holds in memory between requests."""
    tasks: list[Task] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


class CalendarDay(CamelModel):
    date: datetime.date
    is_today: bool = False
    tasks: list[Task] = Field(default_factory=list)


class DaySummary(CamelModel):
    completed: int
    total: int
    percent: int


class DayView(CamelModel):
    day: CalendarDay
    summary: DaySummary
    label: str


class WeekView(CamelModel):
    start: datetime.date
    end: datetime.date
    days: list[CalendarDay]
    label: str


class MonthGrid(CamelModel):
    year: int
    month: int
    leading_blanks: int  # Empty cells before the 1st in a Monday-first grid
    days: list[CalendarDay]
    label: str
