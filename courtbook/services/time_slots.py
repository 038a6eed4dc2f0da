"""
Time-slot generation for the booking calendar grid.

Pure calculation module: no database, no I/O, no FastAPI. Anything that
depends on "now" takes it as an argument so results are reproducible.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time

from courtbook.errors import InvalidRangeError
from courtbook.models import TimeSlot

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def _check_hour(name: str, hour: int) -> None:
    if not 0 <= hour <= 23:
        raise InvalidRangeError(
            f"{name} must be between 0 and 23, got {hour}",
            details={name: hour},
        )


def parse_time(value: str) -> tuple[int, int]:
    """Split a zero-padded "HH:MM" string into (hour, minute)."""
    match = _TIME_RE.match(value)
    if match is None:
        raise InvalidRangeError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidRangeError(f"Invalid time {value!r}, expected HH:MM")
    return hour, minute


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def _to_minutes(value: str) -> int:
    hour, minute = parse_time(value)
    return hour * 60 + minute


def generate_slots(start_hour: int, end_hour: int, step_minutes: int = 30) -> list[TimeSlot]:
    """
    Return one slot per `step_minutes` from start_hour:00 up to, but not
    including, end_hour:00.

    An empty window (start_hour >= end_hour) yields no slots rather than
    an error; hours outside 0..23 raise InvalidRangeError.
    """
    _check_hour("start_hour", start_hour)
    _check_hour("end_hour", end_hour)
    if step_minutes <= 0:
        raise InvalidRangeError(
            f"step_minutes must be positive, got {step_minutes}",
            details={"step_minutes": step_minutes},
        )

    if start_hour >= end_hour:
        return []

    slots: list[TimeSlot] = []
    for minute_of_day in range(start_hour * 60, end_hour * 60, step_minutes):
        hour, minute = divmod(minute_of_day, 60)
        slots.append(
            TimeSlot(
                time=format_time(hour, minute),
                hour=hour,
                minute=minute,
                is_half_hour=minute == 30,
            )
        )
    return slots


def time_options(start_hour: int, end_hour: int, step_minutes: int = 30) -> list[str]:
    """Start/end picker options: the slot times plus the closing time."""
    options = [slot.time for slot in generate_slots(start_hour, end_hour, step_minutes)]
    if options:
        options.append(format_time(end_hour, 0))
    return options


def end_time_options(start_time: str, options: list[str]) -> list[str]:
    """Options an end time may take once `start_time` is chosen."""
    if start_time not in options:
        return []
    return options[options.index(start_time) + 1:]


def minutes_between(start_time: str, end_time: str) -> int:
    return _to_minutes(end_time) - _to_minutes(start_time)


def slot_span(start_time: str, end_time: str, step_minutes: int = 30) -> int:
    """How many grid rows a booking from start_time to end_time covers."""
    duration = minutes_between(start_time, end_time)
    return max(1, -(-duration // step_minutes))


def default_end_time(start_time: str, duration_minutes: int, end_hour: int) -> str:
    """End time for a booking of `duration_minutes`, capped at closing time."""
    _check_hour("end_hour", end_hour)
    start = _to_minutes(start_time)
    closing = end_hour * 60
    if start >= closing:
        raise InvalidRangeError(
            f"{start_time} is not before closing time {format_time(end_hour, 0)}",
        )
    hour, minute = divmod(min(start + duration_minutes, closing), 60)
    return format_time(hour, minute)


def is_past_slot(day: date, slot_time: str, now: datetime) -> bool:
    """True when the slot on `day` starts before `now`."""
    hour, minute = parse_time(slot_time)
    starts_at = datetime.combine(day, time(hour, minute), tzinfo=now.tzinfo)
    return starts_at < now
