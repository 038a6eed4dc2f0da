"""
SQLite database layer using aiosqlite.

Stores courts and bookings. Tables are created automatically on first
connect.

The bookings table is the authoritative guard against double booking:
triggers reject any insert or update that would leave two non-cancelled
bookings overlapping on the same court and date. The service layer's
conflict check is only advisory; a write that slips past it (for
example two users booking the same slot at once) is still rejected
here and surfaces as BookingConflictError.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import aiosqlite
from pydantic import TypeAdapter

from courtbook.config import DB_PATH, DB_TIMEOUT
from courtbook.errors import BookingConflictError, TransientWriteError
from courtbook.models import Booking, BookingCreate, Court, RecurringPattern

logger = logging.getLogger(__name__)

_PATTERN_ADAPTER: TypeAdapter[Any] = TypeAdapter(RecurringPattern)

# Message raised by the overlap triggers
_OVERLAP_MARKER = "booking_overlap"

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None

# Writes share one connection, so each statement and its commit or rollback
# must run without another write interleaving.
_write_lock: asyncio.Lock | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path), timeout=DB_TIMEOUT)
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    _write_lock = asyncio.Lock()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS courts (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    surface_type    TEXT NOT NULL,
    court_type      TEXT NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bookings (
    id                TEXT PRIMARY KEY,
    court_id          TEXT NOT NULL,
    date              TEXT NOT NULL,   -- YYYY-MM-DD
    start_time        TEXT NOT NULL,   -- HH:MM
    end_time          TEXT NOT NULL,   -- HH:MM
    booking_type      TEXT NOT NULL,
    group_id          TEXT,
    player_id         TEXT,
    coach_id          TEXT,
    is_recurring      INTEGER NOT NULL DEFAULT 0,
    recurring_pattern TEXT,            -- JSON
    series_id         TEXT,
    notes             TEXT,
    status            TEXT NOT NULL DEFAULT 'confirmed',
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL,
    CHECK (start_time < end_time),
    FOREIGN KEY (court_id) REFERENCES courts(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_bookings_court_date ON bookings(court_id, date);
CREATE INDEX IF NOT EXISTS idx_bookings_coach_date ON bookings(coach_id, date);
CREATE INDEX IF NOT EXISTS idx_bookings_group ON bookings(group_id);

CREATE TRIGGER IF NOT EXISTS bookings_no_overlap_insert
BEFORE INSERT ON bookings
WHEN NEW.status != 'cancelled' AND EXISTS (
    SELECT 1 FROM bookings AS b
    WHERE b.court_id = NEW.court_id
      AND b.date = NEW.date
      AND b.status != 'cancelled'
      AND NEW.start_time < b.end_time
      AND b.start_time < NEW.end_time
)
BEGIN
    SELECT RAISE(ABORT, 'booking_overlap');
END;

CREATE TRIGGER IF NOT EXISTS bookings_no_overlap_update
BEFORE UPDATE OF court_id, date, start_time, end_time, status ON bookings
WHEN NEW.status != 'cancelled' AND EXISTS (
    SELECT 1 FROM bookings AS b
    WHERE b.id != NEW.id
      AND b.court_id = NEW.court_id
      AND b.date = NEW.date
      AND b.status != 'cancelled'
      AND NEW.start_time < b.end_time
      AND b.start_time < NEW.end_time
)
BEGIN
    SELECT RAISE(ABORT, 'booking_overlap');
END;
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(dt: datetime | date | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _str_or_none(value: UUID | str | None) -> str | None:
    return None if value is None else str(value)


def _pattern_to_json(pattern: RecurringPattern | None) -> str | None:
    if pattern is None:
        return None
    return _PATTERN_ADAPTER.dump_json(pattern).decode()


def _row_to_court(row: aiosqlite.Row) -> Court:
    """Convert a database row to a Court model."""
    return Court(
        id=UUID(row["id"]),
        name=row["name"],
        surface_type=row["surface_type"],
        court_type=row["court_type"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


def _row_to_booking(row: aiosqlite.Row) -> Booking:
    """Convert a database row to a Booking model."""
    raw_pattern = row["recurring_pattern"]
    return Booking(
        id=UUID(row["id"]),
        court_id=UUID(row["court_id"]),
        date=row["date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        booking_type=row["booking_type"],
        group_id=row["group_id"],
        player_id=row["player_id"],
        coach_id=row["coach_id"],
        is_recurring=bool(row["is_recurring"]),
        recurring_pattern=_PATTERN_ADAPTER.validate_json(raw_pattern) if raw_pattern else None,
        series_id=UUID(row["series_id"]) if row["series_id"] else None,
        notes=row["notes"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def _execute_write(sql: str, params: tuple | list) -> aiosqlite.Cursor:
    """
    Run one write statement and commit it.

    Overlap-trigger aborts become BookingConflictError; a locked or busy
    database becomes TransientWriteError so the caller can ask the user
    to retry.
    """
    db = get_db()
    assert _write_lock is not None
    async with _write_lock:
        try:
            cur = await db.execute(sql, params)
            await db.commit()
        except aiosqlite.IntegrityError as exc:
            await db.rollback()
            if _OVERLAP_MARKER in str(exc):
                logger.info("Write rejected by overlap constraint")
                raise BookingConflictError(
                    "Court is already booked at this time",
                    code="booking_overlap",
                ) from exc
            raise
        except aiosqlite.OperationalError as exc:
            await db.rollback()
            message = str(exc).lower()
            if "locked" in message or "busy" in message:
                logger.warning("Database busy, write abandoned: %s", exc)
                raise TransientWriteError() from exc
            raise
    return cur


# ══════════════════════════════════════════════════════════════════════════
#                    COURT REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_court(
    name: str,
    surface_type: str,
    court_type: str,
    *,
    is_active: bool = True,
) -> Court:
    """Insert a new court and return it."""
    court_id = str(uuid4())
    await _execute_write(
        """
        INSERT INTO courts (id, name, surface_type, court_type, is_active, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (court_id, name, surface_type, court_type, int(is_active), _now_iso()),
    )
    return await get_court(court_id)  # type: ignore[return-value]


async def get_court(court_id: str) -> Court | None:
    """Fetch a single court by ID."""
    db = get_db()
    async with db.execute("SELECT * FROM courts WHERE id = ?", (court_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_court(row) if row else None


async def list_courts(
    *,
    surface_type: str | None = None,
    court_type: str | None = None,
    active: bool | None = None,
) -> list[Court]:
    """List courts ordered by name, with optional filters."""
    db = get_db()
    sql = "SELECT * FROM courts WHERE 1 = 1"
    params: list = []

    if surface_type is not None:
        sql += " AND surface_type = ?"
        params.append(surface_type)
    if court_type is not None:
        sql += " AND court_type = ?"
        params.append(court_type)
    if active is not None:
        sql += " AND is_active = ?"
        params.append(int(active))

    sql += " ORDER BY name"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_court(r) for r in rows]


# ══════════════════════════════════════════════════════════════════════════
#                    BOOKING REPOSITORY
# ══════════════════════════════════════════════════════════════════════════

# Columns a partial update may touch
_UPDATABLE_COLUMNS = (
    "court_id", "date", "start_time", "end_time", "booking_type",
    "group_id", "player_id", "coach_id", "notes", "status",
)


async def create_booking(
    data: BookingCreate,
    *,
    is_recurring: bool = False,
    recurring_pattern: RecurringPattern | None = None,
    series_id: UUID | None = None,
) -> Booking:
    """Insert a new booking and return it. Raises BookingConflictError on overlap."""
    booking_id = str(uuid4())
    now = _now_iso()

    await _execute_write(
        """
        INSERT INTO bookings (
            id, court_id, date, start_time, end_time, booking_type,
            group_id, player_id, coach_id,
            is_recurring, recurring_pattern, series_id,
            notes, status, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            booking_id, str(data.court_id), _iso(data.date),
            data.start_time, data.end_time, data.booking_type,
            data.group_id, data.player_id, data.coach_id,
            int(is_recurring), _pattern_to_json(recurring_pattern),
            _str_or_none(series_id),
            data.notes, data.status, now, now,
        ),
    )
    logger.info(
        "Booking %s created: court %s on %s %s-%s",
        booking_id, data.court_id, data.date, data.start_time, data.end_time,
    )
    return await get_booking(booking_id)  # type: ignore[return-value]


async def get_booking(booking_id: str) -> Booking | None:
    """Fetch a single booking by ID."""
    db = get_db()
    async with db.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_booking(row) if row else None


async def list_bookings(
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    court_id: str | None = None,
    coach_id: str | None = None,
    group_id: str | None = None,
    status: str | None = None,
    booking_type: str | None = None,
    include_cancelled: bool = True,
    exclude_booking_id: str | None = None,
) -> list[Booking]:
    """List bookings ordered by date and start time, with optional filters."""
    db = get_db()
    sql = "SELECT * FROM bookings WHERE 1 = 1"
    params: list = []

    if date_from is not None:
        sql += " AND date >= ?"
        params.append(_iso(date_from))
    if date_to is not None:
        sql += " AND date <= ?"
        params.append(_iso(date_to))
    if court_id is not None:
        sql += " AND court_id = ?"
        params.append(court_id)
    if coach_id is not None:
        sql += " AND coach_id = ?"
        params.append(coach_id)
    if group_id is not None:
        sql += " AND group_id = ?"
        params.append(group_id)
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    if booking_type is not None:
        sql += " AND booking_type = ?"
        params.append(booking_type)
    if not include_cancelled:
        sql += " AND status != 'cancelled'"
    if exclude_booking_id is not None:
        sql += " AND id != ?"
        params.append(exclude_booking_id)

    sql += " ORDER BY date, start_time"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_booking(r) for r in rows]


async def update_booking(booking_id: str, changes: dict[str, Any]) -> Booking | None:
    """Apply a partial update. Raises BookingConflictError on overlap."""
    unknown = set(changes) - set(_UPDATABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")

    if changes:
        columns = [c for c in _UPDATABLE_COLUMNS if c in changes]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = [
            _iso(changes[c]) if c == "date" else _str_or_none(changes[c])
            for c in columns
        ]
        await _execute_write(
            f"UPDATE bookings SET {assignments}, updated_at = ? WHERE id = ?",
            (*params, _now_iso(), booking_id),
        )
        logger.info("Booking %s updated: %s", booking_id, ", ".join(columns))
    return await get_booking(booking_id)


async def set_booking_status(booking_id: str, status: str) -> Booking | None:
    """Change a booking's status (e.g. cancel it)."""
    return await update_booking(booking_id, {"status": status})


async def delete_booking(booking_id: str) -> bool:
    """Delete a booking. Returns True if a row was actually deleted."""
    cur = await _execute_write("DELETE FROM bookings WHERE id = ?", (booking_id,))
    return cur.rowcount > 0


async def delete_future_group_bookings(group_id: str, from_date: date) -> int:
    """Delete a group's bookings on or after `from_date`. Returns the count."""
    cur = await _execute_write(
        "DELETE FROM bookings WHERE group_id = ? AND date >= ?",
        (group_id, _iso(from_date)),
    )
    return cur.rowcount
