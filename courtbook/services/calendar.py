"""
Calendar views built on top of the slot generator.

`build_day_grid` lays a day's bookings over the operating-window slots,
one column per court, the way the booking calendar renders them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta

from courtbook.models import Booking, Court, CourtColumn, DayGrid, GridSlot
from courtbook.services.time_slots import generate_slots, is_past_slot, slot_span


def week_dates(anchor: date) -> list[date]:
    """Monday through Sunday of the week containing `anchor`."""
    monday = anchor - timedelta(days=anchor.weekday())
    return [monday + timedelta(days=offset) for offset in range(7)]


def _booking_at(slot_time: str, bookings: Sequence[Booking]) -> Booking | None:
    for booking in bookings:
        if booking.start_time <= slot_time < booking.end_time:
            return booking
    return None


def build_day_grid(
    day: date,
    courts: Sequence[Court],
    bookings: Sequence[Booking],
    now: datetime,
    start_hour: int,
    end_hour: int,
    step_minutes: int = 30,
) -> DayGrid:
    """
    Mark every slot of every court as booked, past or free.

    A booked slot stays "booked" even when it lies in the past. Cancelled
    bookings and bookings for other days are ignored.
    """
    slots = generate_slots(start_hour, end_hour, step_minutes)
    active = [b for b in bookings if b.date == day and b.status != "cancelled"]

    columns = []
    for court in courts:
        court_bookings = [b for b in active if b.court_id == court.id]
        grid_slots = []
        for slot in slots:
            booking = _booking_at(slot.time, court_bookings)
            if booking is not None:
                starts_here = booking.start_time == slot.time
                grid_slots.append(
                    GridSlot(
                        time=slot.time,
                        status="booked",
                        booking_id=booking.id,
                        is_booking_start=starts_here,
                        span=slot_span(booking.start_time, booking.end_time, step_minutes)
                        if starts_here else 1,
                    )
                )
            elif is_past_slot(day, slot.time, now):
                grid_slots.append(GridSlot(time=slot.time, status="past"))
            else:
                grid_slots.append(GridSlot(time=slot.time, status="free"))
        columns.append(CourtColumn(court_id=court.id, court_name=court.name, slots=grid_slots))

    return DayGrid(date=day, slots=slots, courts=columns)
