"""
Advisory conflict detection for court bookings.

These checks run before a write so the user gets an early warning. They
are not the guarantee against double booking: the database re-checks
every write with its own overlap trigger (see `courtbook.db`).

All intervals are half-open, so a booking ending at 10:00 and one
starting at 10:00 on the same court do not conflict.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from courtbook.models import BookingInterval


def times_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Overlap test on zero-padded HH:MM strings, ignoring court and date."""
    return start_a < end_b and start_b < end_a


def intervals_overlap(a: BookingInterval, b: BookingInterval) -> bool:
    if a.court_id != b.court_id or a.date != b.date:
        return False
    return times_overlap(a.start_time, a.end_time, b.start_time, b.end_time)


def find_overlap(
    candidate: BookingInterval,
    existing: Iterable[BookingInterval],
) -> BookingInterval | None:
    """Return the first interval in `existing` that overlaps `candidate`."""
    for other in existing:
        if intervals_overlap(candidate, other):
            return other
    return None


def find_conflicts(
    candidates: Sequence[BookingInterval],
    existing: Sequence[BookingInterval],
) -> list[tuple[BookingInterval, BookingInterval]]:
    """
    Check a batch of proposed intervals against existing bookings.

    Returns (candidate, conflicting existing interval) pairs in candidate
    order. Candidates are not checked against each other.
    """
    conflicts = []
    for candidate in candidates:
        other = find_overlap(candidate, existing)
        if other is not None:
            conflicts.append((candidate, other))
    return conflicts


_CONFLICT_MESSAGES = {
    "court": "Court is already booked",
    "coach": "Coach is already teaching",
}


def describe_conflict(existing: BookingInterval, conflict_type: str = "court") -> str:
    """User-facing warning for a conflict with `existing`."""
    return f"{_CONFLICT_MESSAGES[conflict_type]} from {existing.start_time} to {existing.end_time}"
