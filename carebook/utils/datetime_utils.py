"""
Datetime helpers for consistent timezone handling.

Instants are stored in UTC. Slot grids, labels and "today" are computed in the
clinic timezone from ``CLINIC_TIMEZONE``.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from carebook.core import config


def clinic_now(tz: tzinfo | None = None) -> datetime:
    return datetime.now(tz or config.get_clinic_timezone())


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive values are assumed to already be UTC, which is how SQLite hands
    back ``DateTime(timezone=True)`` columns.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz: tzinfo | None = None) -> datetime:
    return ensure_utc(dt).astimezone(tz or config.get_clinic_timezone())


def local_day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """UTC instants for local midnight of ``day`` and of the following day."""
    zone = tz or config.get_clinic_timezone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def parse_start_time(value: datetime | str, tz: tzinfo | None = None) -> datetime:
    """
    Parse a requested appointment start into a minute-aligned UTC instant.

    Accepts datetimes and ISO 8601 strings (a trailing ``Z`` is allowed).
    Naive values are read as clinic local time.

    Raises:
        ValueError: if the value cannot be parsed.
    """
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith('Z') or raw.endswith('z'):
            raw = raw[:-1] + '+00:00'
        parsed = datetime.fromisoformat(raw)
    elif isinstance(value, datetime):
        parsed = value
    else:
        raise ValueError(f'Unsupported start time: {value!r}')

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or config.get_clinic_timezone())
    return parsed.astimezone(timezone.utc).replace(second=0, microsecond=0)


def isoformat_utc(dt: datetime) -> str:
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')
