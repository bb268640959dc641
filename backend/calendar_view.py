"""
Day, week and month projections of the task collection.

Weeks run Monday through Sunday. Month grids are Monday-first, so the 1st of
the month is preceded by as many blank cells as there are days between Monday
and its weekday. "Today" is read at call time and never cached.
"""
import calendar
from datetime import date, timedelta
from typing import Iterable, Optional

from models import (
    CalendarDay,
    DaySummary,
    DayView,
    MonthGrid,
    Task,
    ViewMode,
    WeekView,
)


def time_to_minutes(start_time: str) -> int:
    """Convert HH:MM into minutes since midnight."""
    hours, minutes = map(int, start_time.split(":"))
    return hours * 60 + minutes


def tasks_for_day(tasks: Iterable[Task], day: date) -> list[Task]:
    return [task for task in tasks if task.date == day]


def sort_by_start_time(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda task: time_to_minutes(task.start_time))


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    # weekday() is already (sunday_first_day + 6) % 7
    return day - timedelta(days=day.weekday())


def week_dates(day: date) -> list[date]:
    start = week_start(day)
    return [start + timedelta(days=offset) for offset in range(7)]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_padding(year: int, month: int) -> int:
    """Number of blank cells before the 1st in a Monday-first month grid."""
    return date(year, month, 1).weekday()


def day_progress(tasks: list[Task]) -> DaySummary:
    completed = sum(1 for task in tasks if task.is_completed)
    total = len(tasks)
    percent = round(completed / total * 100) if total else 0
    return DaySummary(completed=completed, total=total, percent=percent)


def shift_date(day: date, view_mode: ViewMode, step: int) -> date:
    """
    Move the reference date by step days, weeks or months.
    Month steps keep the day of month, clamped to the target month's length.
    """
    if view_mode == ViewMode.DAY:
        return day + timedelta(days=step)
    if view_mode == ViewMode.WEEK:
        return day + timedelta(weeks=step)
    if view_mode == ViewMode.MONTH:
        month_index = day.year * 12 + (day.month - 1) + step
        year, month = divmod(month_index, 12)
        month += 1
        return date(year, month, min(day.day, days_in_month(year, month)))
    raise ValueError(f"Unknown view mode: {view_mode}")


def _short(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def header_label(day: date, view_mode: ViewMode) -> str:
    """Heading shown above each view, e.g. "Fri, March 1" or "Feb 26 - Mar 3"."""
    if view_mode == ViewMode.DAY:
        return f"{day.strftime('%a, %B')} {day.day}"
    if view_mode == ViewMode.WEEK:
        start = week_start(day)
        return f"{_short(start)} - {_short(start + timedelta(days=6))}"
    if view_mode == ViewMode.MONTH:
        return day.strftime("%B %Y")
    raise ValueError(f"Unknown view mode: {view_mode}")


def format_planner_date(day: date) -> str:
    """Human readable date passed to the planner, e.g. "Friday, March 1"."""
    return f"{day.strftime('%A, %B')} {day.day}"


def _calendar_day(tasks: Iterable[Task], day: date, today: date) -> CalendarDay:
    return CalendarDay(
        date=day,
        is_today=day == today,
        tasks=sort_by_start_time(tasks_for_day(tasks, day)),
    )


def build_day(tasks: list[Task], day: date, today: Optional[date] = None) -> DayView:
    today = today or date.today()
    calendar_day = _calendar_day(tasks, day, today)
    return DayView(
        day=calendar_day,
        summary=day_progress(calendar_day.tasks),
        label=header_label(day, ViewMode.DAY),
    )


def build_week(tasks: list[Task], day: date, today: Optional[date] = None) -> WeekView:
    today = today or date.today()
    days = [_calendar_day(tasks, d, today) for d in week_dates(day)]
    return WeekView(
        start=days[0].date,
        end=days[-1].date,
        days=days,
        label=header_label(day, ViewMode.WEEK),
    )


def build_month(tasks: list[Task], day: date, today: Optional[date] = None) -> MonthGrid:
    today = today or date.today()
    year, month = day.year, day.month
    days = [
        _calendar_day(tasks, date(year, month, d), today)
        for d in range(1, days_in_month(year, month) + 1)
    ]
    return MonthGrid(
        year=year,
        month=month,
        leading_blanks=month_padding(year, month),
        days=days,
        label=header_label(day, ViewMode.MONTH),
    )
