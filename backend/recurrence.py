import logging
from datetime import date, timedelta

from models import RecurrenceRule, RecurrenceType, SeriesCreate, TaskCreate

logger = logging.getLogger(__name__)

# Upper bound on instances generated by one recurrence request
MAX_INSTANCES = 365


def rule_matches(rule: RecurrenceRule, target: date, anchor: date) -> bool:
    """
    Check if a recurrence rule includes a specific date.
    anchor is the first date of the series; weekly rules repeat on its weekday.
    """
    if rule.type == RecurrenceType.DAILY:
        return True
    if rule.type == RecurrenceType.WEEKLY:
        return target.weekday() == anchor.weekday()
    if rule.type == RecurrenceType.CUSTOM:
        return target.weekday() in rule.weekdays
    raise ValueError(f"Unknown recurrence type: {rule.type}")


def expand_recurrence(
    base: dict,
    start_date: date,
    end_date: date,
    rule: RecurrenceRule,
    max_instances: int = MAX_INSTANCES
) -> list[TaskCreate]:
    """
    Expand one recurrence request into dated task payloads.

    Walks from start_date to end_date inclusive, one calendar day at a time,
    and emits a copy of base for every date the rule matches. Stops after
    max_instances payloads. An end date before the start date, or a custom
    rule without weekdays, yields an empty list.
    """
    instances: list[TaskCreate] = []
    current = start_date
    while current <= end_date and len(instances) < max_instances:
        if rule_matches(rule, current, start_date):
            # model_validate builds a fresh model per date, nothing is shared
            instances.append(TaskCreate.model_validate({**base, "date": current}))
        current += timedelta(days=1)

    if len(instances) == max_instances and _matches_after(rule, current, end_date, start_date):
        logger.info("Recurrence capped at %d instances (stopped before %s)", max_instances, current)
    return instances


def _matches_after(rule: RecurrenceRule, current: date, end_date: date, anchor: date) -> bool:
    """True if some date from current to end_date still matches the rule."""
    # Rules repeat weekly, so a week ahead is enough to find a match
    remaining = (end_date - current).days + 1
    return any(
        rule_matches(rule, current + timedelta(days=offset), anchor)
        for offset in range(min(7, remaining))
    )


def expand_series_request(request: SeriesCreate) -> list[TaskCreate]:
    """Expand a SeriesCreate request into its dated payloads."""
    base = request.model_dump(
        include={"title", "description", "start_time", "duration_minutes", "category"}
    )
    return expand_recurrence(base, request.start_date, request.end_date, request.rule)
