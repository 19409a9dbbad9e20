# periodic/core/scheduler/calculator.py
from __future__ import annotations
import re
from datetime import datetime
from typing import Mapping, Optional
from croniter import CroniterError, croniter
from periodic.core.utils.clock import ensure_utc, utc_now

# minute, hour, day-of-month, month, day-of-week
CRON_FIELD_COUNT = 5

_MONTH_NAMES = {
    name: index
    for index, name in enumerate(
        ('JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN',
         'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC'),
        start=1,
    )
}
_DAY_NAMES = {
    name: index
    for index, name in enumerate(('SUN', 'MON', 'TUE', 'WED', 'THU', 'FRI', 'SAT'))
}

# (low, high, names) per field, in expression order
_CRON_FIELDS: tuple[tuple[int, int, Mapping[str, int]], ...] = (
    (0, 59, {}),
    (0, 23, {}),
    (1, 31, {}),
    (1, 12, _MONTH_NAMES),
    (0, 6, _DAY_NAMES),
)

# '*', 'N' or 'N-M', each with an optional '/step'
_CRON_TERM = re.compile(r'(?:(\*)|([0-9A-Za-z]+)(?:-([0-9A-Za-z]+))?)(?:/([0-9]+))?')


def _field_value(token: str, low: int, high: int, names: Mapping[str, int]) -> Optional[int]:
    if token.isdigit():
        value = int(token)
    else:
        found = names.get(token.upper())
        if found is None:
            return None
        value = found
    return value if low <= value <= high else None


def _is_valid_field(field: str, low: int, high: int, names: Mapping[str, int]) -> bool:
    """
    Check one field against standard Unix cron syntax.

    Rejects parser extensions such as ``R`` (random), ``L``, ``W``, ``#`` and ``?``.
    """
    for term in field.split(','):
        match = _CRON_TERM.fullmatch(term)
        if match is None:
            return False
        star, start, end, step = match.groups()
        if step is not None and int(step) < 1:
            return False
        if star:
            continue
        first = _field_value(start, low, high, names)
        if first is None:
            return False
        if end is None:
            # a step needs '*' or a range
            if step is not None:
                return False
            continue
        last = _field_value(end, low, high, names)
        if last is None or last < first:
            return False
    return True


def _parse_cron(cron_expression: Optional[str]) -> Optional[str]:
    """
    Normalize and validate a 5-field Unix cron expression.

    Returns the whitespace-normalized expression, or None when it is empty,
    has the wrong number of fields (seconds fields, ``@hourly`` descriptors),
    uses syntax outside standard Unix cron or is rejected by the parser.
    """
    if not cron_expression:
        return None
    fields = cron_expression.split()
    if len(fields) != CRON_FIELD_COUNT:
        return None
    if not all(
        _is_valid_field(field, low, high, names)
        for field, (low, high, names) in zip(fields, _CRON_FIELDS)
    ):
        return None
    normalized = ' '.join(fields)
    try:
        if not croniter.is_valid(normalized):
            return None
    except (CroniterError, ValueError, KeyError):
        return None
    return normalized


def _next_fire_after(cron_expression: str, after: datetime) -> Optional[datetime]:
    """First fire time of the schedule strictly after ``after`` (UTC-aware)."""
    try:
        itr = croniter(cron_expression, after)
        candidate = ensure_utc(itr.get_next(datetime))
        while candidate <= after:
            candidate = ensure_utc(itr.get_next(datetime))
    except (CroniterError, ValueError, KeyError):
        return None
    return candidate


def calculate_next_execution(
    starts_at: datetime,
    repeats: bool,
    cron_expression: Optional[str],
    expiration: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Calculate the next execution instant for a scheduled item.

    Args:
        starts_at: Anchor for one-time items, lower bound for repeating items
        repeats: Whether the item recurs on ``cron_expression``
        cron_expression: 5-field Unix cron expression (repeating items only)
        expiration: Occurrences at or after this instant are not scheduled
        now: Reference time; defaults to the current UTC time

    Returns:
        Next execution time as a UTC-aware datetime, or None when the item
        never executes again (past one-time item, expired, missing or
        malformed cron expression). Never raises for bad schedule data.
    """
    now = utc_now() if now is None else ensure_utc(now)
    starts_at = ensure_utc(starts_at)
    expiration = None if expiration is None else ensure_utc(expiration)

    if not repeats:
        return starts_at if starts_at > now else None

    expression = _parse_cron(cron_expression)
    if expression is None:
        return None

    next_run = _next_fire_after(expression, now)
    if next_run is None:
        return None
    if expiration is not None and next_run >= expiration:
        return None

    # Occurrence predates the item's declared start: anchor on starts_at instead
    if next_run < starts_at:
        next_run = _next_fire_after(expression, starts_at)
        if next_run is None:
            return None
        if expiration is not None and next_run >= expiration:
            return None

    return next_run


def validate_cron_expression(cron_expression: str) -> bool:
    """Check that ``cron_expression`` is a valid 5-field Unix cron expression."""
    return _parse_cron(cron_expression) is not None


def next_fire_times(
    cron_expression: str, after: datetime, count: int
) -> list[datetime]:
    """
    List the next ``count`` fire times strictly after ``after``.

    Used for previewing an expression; returns [] for invalid expressions.
    """
    expression = _parse_cron(cron_expression)
    if expression is None:
        return []

    fire_times: list[datetime] = []
    cursor = ensure_utc(after)
    while len(fire_times) < count:
        next_run = _next_fire_after(expression, cursor)
        if next_run is None:
            break
        fire_times.append(next_run)
        cursor = next_run
    return fire_times


def is_due(next_execution_at: Optional[datetime], check_time: datetime) -> bool:
    """
    Determine whether an item is due at ``check_time``.

    Items without a next execution never run; ``next_execution_at == check_time``
    is due.
    """
    if next_execution_at is None:
        return False
    return ensure_utc(next_execution_at) <= ensure_utc(check_time)


def is_expired(expiration: Optional[datetime], check_time: datetime) -> bool:
    """
    Determine whether an item's validity window has closed at ``check_time``.

    An item expiring exactly at ``check_time`` is expired.
    """
    if expiration is None:
        return False
    return ensure_utc(check_time) >= ensure_utc(expiration)
