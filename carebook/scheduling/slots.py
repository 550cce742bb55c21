"""
Bookable slot computation.

A doctor's canonical weekly window is expanded into fixed 30 minute start
times for one calendar date, then slots that are already taken or already in
the past are removed. Nothing here touches the database; callers pass the
doctor's availability and that day's appointments in.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Iterable

from carebook.core import config
from carebook.scheduling.availability import (
    WEEKDAY_NAMES,
    format_clock,
    normalize_availability,
    parse_clock,
)
from carebook.scheduling.status import STATUS_CANCELLED
from carebook.utils.datetime_utils import clinic_now, isoformat_utc, parse_start_time, to_local

SLOT_DURATION_MINUTES = 30
DEFAULT_DAYS_AHEAD = 30


@dataclass(frozen=True)
class Slot:
    time: str  # "HH:MM", clinic local time
    label: str  # "9:00 AM"
    iso_instant: str  # UTC ISO 8601


@dataclass(frozen=True)
class AvailableDate:
    date: date
    slots_count: int


def _get(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _local_now(now: datetime | None, zone: tzinfo) -> datetime:
    if now is None:
        return clinic_now(zone)
    if now.tzinfo is None:
        return now
    return now.astimezone(zone)


def generate_time_grid(day: date, availability: Any, duration: int = SLOT_DURATION_MINUTES) -> list[str]:
    """All start times for ``day`` that fit entirely inside the doctor's window."""
    window = normalize_availability(availability).get(WEEKDAY_NAMES[day.weekday()])
    if not window:
        return []

    start_minutes = parse_clock(window[0])
    end_minutes = parse_clock(window[1])

    slots = []
    current = start_minutes
    while current + duration <= end_minutes:
        slots.append(format_clock(current))
        current += duration
    return slots


def filter_booked_slots(
    slots: list[str],
    appointments: Iterable[Any],
    day: date,
    tz: tzinfo | None = None,
) -> list[str]:
    """Drop slots whose start equals the local start of a live appointment on ``day``.

    Slots are fixed length and aligned, so matching start times is enough
    here; the booking path does the full interval check.
    """
    zone = tz or config.get_clinic_timezone()
    booked_times = set()
    for appointment in appointments:
        start_time = _get(appointment, 'start_time')
        if not start_time or _get(appointment, 'status') == STATUS_CANCELLED:
            continue
        if isinstance(start_time, str):
            try:
                start_time = parse_start_time(start_time, zone)
            except ValueError:
                continue
        local_start = to_local(start_time, zone)
        if local_start.date() == day:
            booked_times.add(local_start.strftime('%H:%M'))

    return [slot for slot in slots if slot not in booked_times]


def filter_past_slots(slots: list[str], day: date, now: datetime) -> list[str]:
    """On ``now``'s own date keep only slots strictly later than ``now``."""
    if now.date() != day:
        return slots

    current_time = now.strftime('%H:%M')
    return [slot for slot in slots if slot > current_time]


def format_slot_label(slot_time: str) -> str:
    hours, minutes = (int(part) for part in slot_time.split(':'))
    period = 'PM' if hours >= 12 else 'AM'
    display_hour = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f'{display_hour}:{minutes:02d} {period}'


def to_iso_instant(day: date, slot_time: str, tz: tzinfo | None = None) -> str:
    hours, minutes = (int(part) for part in slot_time.split(':'))
    local = datetime.combine(day, time(hours, minutes), tzinfo=tz or config.get_clinic_timezone())
    return isoformat_utc(local)


def get_available_slots(
    day: date,
    doctor: Any,
    existing_appointments: Iterable[Any] = (),
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Slot]:
    """Bookable slots for ``doctor`` on ``day``, in chronological order.

    The result is advisory: it reserves nothing, and booking re-checks
    against live data.
    """
    zone = tz or config.get_clinic_timezone()
    current = _local_now(now, zone)

    candidates = generate_time_grid(day, _get(doctor, 'availability'))
    unbooked = filter_booked_slots(candidates, existing_appointments, day, zone)
    available = filter_past_slots(unbooked, day, current)

    return [
        Slot(time=slot, label=format_slot_label(slot), iso_instant=to_iso_instant(day, slot, zone))
        for slot in available
    ]


def is_slot_available(
    day: date,
    slot_time: str,
    doctor: Any,
    appointments: Iterable[Any],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> bool:
    return any(
        slot.time == slot_time
        for slot in get_available_slots(day, doctor, appointments, now=now, tz=tz)
    )


def get_available_dates(
    doctor: Any,
    appointments: Iterable[Any],
    start: date | None = None,
    days_ahead: int = DEFAULT_DAYS_AHEAD,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[AvailableDate]:
    zone = tz or config.get_clinic_timezone()
    current = _local_now(now, zone)
    first_day = start or current.date()
    appointments = list(appointments)

    dates = []
    for offset in range(days_ahead):
        day = first_day + timedelta(days=offset)
        slots = get_available_slots(day, doctor, appointments, now=current, tz=zone)
        if slots:
            dates.append(AvailableDate(date=day, slots_count=len(slots)))
    return dates
