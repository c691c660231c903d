"""Time-window calculation for symbolic analysis periods."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, TypeVar, Union

from .exceptions import InvalidPeriodError
from .models import Granularity, TimeBounds

T = TypeVar("T")


class TimePeriod(str, Enum):
    """Symbolic analysis periods understood by every analytics entry point."""

    DAYS_30 = "30d"
    DAYS_90 = "90d"
    MONTHS_6 = "6m"
    YEAR_1 = "1y"
    ALL = "all"


PERIOD_ALIASES = {
    "3m": TimePeriod.DAYS_90,
}

PERIOD_DAYS = {
    TimePeriod.DAYS_30: 30,
    TimePeriod.DAYS_90: 90,
    TimePeriod.MONTHS_6: 182,
    TimePeriod.YEAR_1: 365,
}

PERIOD_GRANULARITY = {
    TimePeriod.DAYS_30: Granularity.DAY,
    TimePeriod.DAYS_90: Granularity.WEEK,
    TimePeriod.MONTHS_6: Granularity.WEEK,
    TimePeriod.YEAR_1: Granularity.MONTH,
    TimePeriod.ALL: Granularity.MONTH,
}


def parse_period(value: Union[str, TimePeriod]) -> TimePeriod:
    """Resolve a period token, accepting aliases such as ``3m``.

    Raises:
        InvalidPeriodError: If the token is unknown
    """
    if isinstance(value, TimePeriod):
        return value

    token = str(value).strip().lower()
    if token in PERIOD_ALIASES:
        return PERIOD_ALIASES[token]
    try:
        return TimePeriod(token)
    except ValueError as exc:
        valid = ", ".join([p.value for p in TimePeriod] + list(PERIOD_ALIASES))
        raise InvalidPeriodError(f"Unknown period '{value}'. Valid periods: {valid}") from exc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_time_period_bounds(
    period: Union[str, TimePeriod],
    now: Optional[datetime] = None,
) -> TimeBounds:
    """Map a symbolic period to concrete bounds.

    ``all`` is unbounded; every other period yields ``since = now - N days``
    and no ``until``. ``now`` is read at call time unless supplied.
    """
    resolved = parse_period(period)
    if resolved is TimePeriod.ALL:
        return TimeBounds()

    current = now or utc_now()
    return TimeBounds(since=current - timedelta(days=PERIOD_DAYS[resolved]))


def granularity_for_period(period: Union[str, TimePeriod]) -> Granularity:
    """Daily buckets for short periods, weekly for medium, monthly for long."""
    return PERIOD_GRANULARITY[parse_period(period)]


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_key(value: datetime, granularity: Granularity) -> str:
    """Sortable bucket key for a timestamp.

    Days render as ``YYYY-MM-DD``, ISO weeks as ``YYYY-Www`` and months as
    ``YYYY-MM``; lexical order matches chronological order.
    """
    moment = as_utc(value)
    if granularity is Granularity.DAY:
        return moment.date().isoformat()
    if granularity is Granularity.WEEK:
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{moment.year}-{moment.month:02d}"


def week_start_sunday(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


def filter_by_period(
    records: Optional[Iterable[T]],
    period: Union[str, TimePeriod],
    timestamp_of: Callable[[T], Optional[datetime]],
    now: Optional[datetime] = None,
) -> List[T]:
    """Keep records whose timestamp falls inside the period.

    Records without a usable timestamp are dropped, except for ``all`` which
    returns every record unchanged.
    """
    if not records:
        return []

    bounds = get_time_period_bounds(period, now)
    if bounds.since is None:
        return list(records)

    since = as_utc(bounds.since)
    kept = []
    for record in records:
        stamp = timestamp_of(record)
        if stamp is not None and as_utc(stamp) >= since:
            kept.append(record)
    return kept
