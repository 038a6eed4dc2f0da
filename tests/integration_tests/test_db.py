"""
Database-level tests: the overlap triggers are the last line of defence
against double booking, so they are exercised here without the service
layer's advisory checks.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import date

import aiosqlite
import pytest

from courtbook import db
from courtbook.errors import BookingConflictError, TransientWriteError
from courtbook.models import BookingCreate, WeeklyPattern

_DAY = date(2099, 5, 4)


@pytest.fixture()
async def _init_db(tmp_path, monkeypatch):
    import courtbook.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "db_test.db"))
    await db.init_db()
    yield
    await db.close_db()


@pytest.fixture()
async def court_id(_init_db) -> str:
    court = await db.create_court("Centre Court", "hard", "indoor")
    return str(court.id)


def _booking(court_id: str, start: str, end: str, day: date = _DAY, **extra) -> BookingCreate:
    return BookingCreate(court_id=court_id, date=day, start_time=start, end_time=end, **extra)


@pytest.mark.asyncio
async def test_overlapping_insert_rejected(court_id):
    await db.create_booking(_booking(court_id, "09:00", "10:30"))

    with pytest.raises(BookingConflictError) as exc_info:
        await db.create_booking(_booking(court_id, "10:00", "11:00"))
    assert exc_info.value.code == "booking_overlap"

    rows = await db.list_bookings(court_id=court_id)
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_adjacent_and_other_day_allowed(court_id):
    await db.create_booking(_booking(court_id, "09:00", "10:30"))
    await db.create_booking(_booking(court_id, "10:30", "11:30"))
    await db.create_booking(_booking(court_id, "09:00", "10:30", day=date(2099, 5, 5)))

    assert len(await db.list_bookings(court_id=court_id)) == 3


@pytest.mark.asyncio
async def test_cancelled_bookings_do_not_block(court_id):
    first = await db.create_booking(_booking(court_id, "09:00", "10:30"))
    await db.set_booking_status(str(first.id), "cancelled")

    second = await db.create_booking(_booking(court_id, "09:00", "10:30"))
    assert second.status == "confirmed"

    # Reinstating the cancelled booking would double-book the court
    with pytest.raises(BookingConflictError):
        await db.set_booking_status(str(first.id), "confirmed")


@pytest.mark.asyncio
async def test_overlapping_update_rejected(court_id):
    await db.create_booking(_booking(court_id, "09:00", "10:00"))
    later = await db.create_booking(_booking(court_id, "11:00", "12:00"))

    with pytest.raises(BookingConflictError):
        await db.update_booking(str(later.id), {"start_time": "09:30"})

    unchanged = await db.get_booking(str(later.id))
    assert unchanged.start_time == "11:00"

    # Changing a booking within its own slot is fine
    moved = await db.update_booking(str(later.id), {"start_time": "10:00", "notes": "earlier"})
    assert moved.start_time == "10:00"
    assert moved.notes == "earlier"


@pytest.mark.asyncio
async def test_concurrent_creates_only_one_wins(court_id):
    results = await asyncio.gather(
        db.create_booking(_booking(court_id, "09:00", "10:00")),
        db.create_booking(_booking(court_id, "09:30", "10:30")),
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], BookingConflictError)


@pytest.mark.asyncio
async def test_time_order_check_constraint(court_id):
    inverted = BookingCreate.model_construct(
        court_id=court_id,
        date=_DAY,
        start_time="10:00",
        end_time="09:00",
        booking_type="rental",
        group_id=None,
        player_id=None,
        coach_id=None,
        notes=None,
        status="confirmed",
    )
    with pytest.raises(aiosqlite.IntegrityError):
        await db.create_booking(inverted)


@pytest.mark.asyncio
async def test_locked_database_is_transient(_init_db, monkeypatch):
    class _LockedConnection:
        async def execute(self, *args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        async def rollback(self):
            pass

    with monkeypatch.context() as m:
        m.setattr(db, "_db", _LockedConnection())
        with pytest.raises(TransientWriteError):
            await db.create_court("Court 9", "hard", "outdoor")


@pytest.mark.asyncio
async def test_recurring_fields_stored(court_id):
    pattern = WeeklyPattern(days_of_week=[1, 3], occurrences=4, exceptions=[date(2099, 5, 6)])
    created = await db.create_booking(
        _booking(court_id, "09:00", "10:00"),
        is_recurring=True,
        recurring_pattern=pattern,
    )

    fetched = await db.get_booking(str(created.id))
    assert fetched.is_recurring is True
    assert fetched.recurring_pattern == pattern


@pytest.mark.asyncio
async def test_delete_future_group_bookings(court_id):
    for day in (date(2099, 5, 1), date(2099, 5, 4), date(2099, 5, 11)):
        await db.create_booking(_booking(court_id, "17:00", "18:00", day=day, group_id="juniors"))
    await db.create_booking(_booking(court_id, "09:00", "10:00", group_id="seniors"))

    deleted = await db.delete_future_group_bookings("juniors", date(2099, 5, 4))
    assert deleted == 2

    remaining = await db.list_bookings(group_id="juniors")
    assert [b.date for b in remaining] == [date(2099, 5, 1)]


@pytest.mark.asyncio
async def test_list_bookings_exclusions(court_id):
    first = await db.create_booking(_booking(court_id, "09:00", "10:00"))
    second = await db.create_booking(_booking(court_id, "10:00", "11:00"))
    await db.set_booking_status(str(second.id), "cancelled")

    active = await db.list_bookings(court_id=court_id, include_cancelled=False)
    assert [b.id for b in active] == [first.id]

    others = await db.list_bookings(court_id=court_id, exclude_booking_id=str(first.id))
    assert [b.id for b in others] == [second.id]


@pytest.mark.asyncio
async def test_list_courts_filters(_init_db):
    await db.create_court("B Court", "clay", "outdoor")
    await db.create_court("A Court", "hard", "indoor", is_active=False)

    assert [c.name for c in await db.list_courts()] == ["A Court", "B Court"]
    assert [c.name for c in await db.list_courts(active=True)] == ["B Court"]
    assert [c.name for c in await db.list_courts(surface_type="hard")] == ["A Court"]
