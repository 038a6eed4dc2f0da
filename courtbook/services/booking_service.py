"""
Booking service – the application layer between the routers and the
database.

Every write goes through an advisory conflict check first so the user
gets a precise message ("Court is already booked from 09:00 to 10:30").
The database re-checks the same rule inside the write itself; if two
requests race past the advisory check, the loser's write is rejected
there and the BookingConflictError propagates to the caller.
"""

from __future__ import annotations

import logging
from datetime import date
from itertools import islice
from uuid import UUID, uuid4

from courtbook import db
from courtbook.config import (
    GROUP_WEEKS_AHEAD,
    RECURRENCE_MAX_OCCURRENCES,
    RECURRENCE_PREVIEW_COUNT,
)
from courtbook.errors import (
    BookingConflictError,
    BookingNotFoundError,
    CourtNotFoundError,
    InvalidPatternError,
    InvalidRangeError,
    TransientWriteError,
)
from courtbook.models import (
    BatchBookingResult,
    Booking,
    BookingConflict,
    BookingCreate,
    BookingInterval,
    BookingUpdate,
    ConflictCheckResult,
    Court,
    GroupRegenerationResult,
    GroupScheduleRequest,
    OccurrencePreview,
    RecurringBookingCreate,
    RecurringPattern,
    WeeklyPattern,
)
from courtbook.services.conflicts import (
    describe_conflict,
    find_conflicts,
    find_overlap,
    times_overlap,
)
from courtbook.services.recurrence import expand, preview, validate_pattern, walk_limit

logger = logging.getLogger(__name__)

# Fields that may not be cleared by an explicit null in a partial update
_REQUIRED_FIELDS = ("court_id", "date", "start_time", "end_time", "booking_type", "status")

# Fields whose change requires a fresh conflict check
_SCHEDULING_FIELDS = {"court_id", "date", "start_time", "end_time", "coach_id", "status"}


class BookingService:
    """Court booking operations: single bookings, recurring series and group schedules."""

    # ── Lookups ───────────────────────────────────────────────────────

    async def _require_court(self, court_id: UUID | str) -> Court:
        court = await db.get_court(str(court_id))
        if court is None:
            raise CourtNotFoundError(str(court_id))
        if not court.is_active:
            raise BookingConflictError(
                f"Court {court.name} is not available for booking",
                code="court_inactive",
                details={"court_id": str(court_id)},
            )
        return court

    async def get_booking(self, booking_id: UUID | str) -> Booking:
        booking = await db.get_booking(str(booking_id))
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def list_bookings(
        self,
        date_from: date,
        date_to: date,
        *,
        court_id: UUID | None = None,
        coach_id: str | None = None,
        status: str | None = None,
        booking_type: str | None = None,
        include_cancelled: bool = True,
    ) -> list[Booking]:
        if date_from > date_to:
            raise InvalidRangeError(
                "date_from must not be after date_to",
                details={"date_from": str(date_from), "date_to": str(date_to)},
            )
        return await db.list_bookings(
            date_from=date_from,
            date_to=date_to,
            court_id=str(court_id) if court_id else None,
            coach_id=coach_id,
            status=status,
            booking_type=booking_type,
            include_cancelled=include_cancelled,
        )

    # ── Advisory conflict checks ──────────────────────────────────────

    async def check_court_conflict(
        self,
        court_id: UUID | str,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: UUID | str | None = None,
    ) -> ConflictCheckResult:
        candidate = BookingInterval(
            court_id=str(court_id), date=on_date, start_time=start_time, end_time=end_time
        )
        existing = await db.list_bookings(
            court_id=str(court_id),
            date_from=on_date,
            date_to=on_date,
            include_cancelled=False,
            exclude_booking_id=str(exclude_booking_id) if exclude_booking_id else None,
        )
        intervals = [b.interval for b in existing]
        other = find_overlap(candidate, intervals)
        if other is None:
            return ConflictCheckResult(has_conflict=False)

        return ConflictCheckResult(
            has_conflict=True,
            conflict_type="court",
            message=describe_conflict(other, "court"),
            conflicting_booking_id=existing[intervals.index(other)].id,
        )

    async def check_coach_conflict(
        self,
        coach_id: str,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: UUID | str | None = None,
    ) -> ConflictCheckResult:
        existing = await db.list_bookings(
            coach_id=coach_id,
            date_from=on_date,
            date_to=on_date,
            include_cancelled=False,
            exclude_booking_id=str(exclude_booking_id) if exclude_booking_id else None,
        )
        for booking in existing:
            if times_overlap(start_time, end_time, booking.start_time, booking.end_time):
                return ConflictCheckResult(
                    has_conflict=True,
                    conflict_type="coach",
                    message=describe_conflict(booking.interval, "coach"),
                    conflicting_booking_id=booking.id,
                )
        return ConflictCheckResult(has_conflict=False)

    async def _ensure_no_conflict(
        self,
        court_id: UUID,
        on_date: date,
        start_time: str,
        end_time: str,
        coach_id: str | None,
        exclude_booking_id: UUID | str | None = None,
    ) -> None:
        checks = [
            await self.check_court_conflict(
                court_id, on_date, start_time, end_time, exclude_booking_id
            )
        ]
        if coach_id:
            checks.append(
                await self.check_coach_conflict(
                    coach_id, on_date, start_time, end_time, exclude_booking_id
                )
            )
        for result in checks:
            if result.has_conflict:
                raise BookingConflictError(
                    result.message or "Booking conflicts with an existing booking",
                    code=f"{result.conflict_type}_conflict",
                    details={"conflicting_booking_id": str(result.conflicting_booking_id)},
                )

    # ── Single bookings ───────────────────────────────────────────────

    async def create_booking(self, data: BookingCreate) -> Booking:
        await self._require_court(data.court_id)
        if data.status != "cancelled":
            await self._ensure_no_conflict(
                data.court_id, data.date, data.start_time, data.end_time, data.coach_id
            )
        return await db.create_booking(data)

    async def update_booking(self, booking_id: UUID | str, changes: BookingUpdate) -> Booking:
        current = await self.get_booking(booking_id)

        updates = changes.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in updates and updates[field] is None:
                del updates[field]
        if not updates:
            return current

        merged = current.model_copy(update=updates)
        if merged.start_time >= merged.end_time:
            raise InvalidRangeError(
                "start_time must be before end_time",
                details={"start_time": merged.start_time, "end_time": merged.end_time},
            )
        if "court_id" in updates:
            await self._require_court(merged.court_id)
        if updates.keys() & _SCHEDULING_FIELDS and merged.status != "cancelled":
            await self._ensure_no_conflict(
                merged.court_id,
                merged.date,
                merged.start_time,
                merged.end_time,
                merged.coach_id,
                exclude_booking_id=booking_id,
            )

        updated = await db.update_booking(str(booking_id), updates)
        if updated is None:
            raise BookingNotFoundError(str(booking_id))
        return updated

    async def cancel_booking(self, booking_id: UUID | str) -> Booking:
        await self.get_booking(booking_id)
        cancelled = await db.set_booking_status(str(booking_id), "cancelled")
        if cancelled is None:
            raise BookingNotFoundError(str(booking_id))
        logger.info("Booking %s cancelled", booking_id)
        return cancelled

    async def delete_booking(self, booking_id: UUID | str) -> None:
        if not await db.delete_booking(str(booking_id)):
            raise BookingNotFoundError(str(booking_id))
        logger.info("Booking %s deleted", booking_id)

    # ── Recurring series ──────────────────────────────────────────────

    def _series_dates(self, start_date: date, pattern: RecurringPattern) -> list[date]:
        """
        Every date a bounded pattern books, walking as far as its own bound.

        Raises InvalidPatternError when the series has more than
        RECURRENCE_MAX_OCCURRENCES dates, whichever bound produced them.
        """
        if pattern.occurrences is not None and pattern.occurrences > RECURRENCE_MAX_OCCURRENCES:
            raise InvalidPatternError(
                f"At most {RECURRENCE_MAX_OCCURRENCES} occurrences can be booked at once",
                details={"occurrences": pattern.occurrences},
            )
        occurrences = expand(start_date, pattern, max_iterations=walk_limit(start_date, pattern))
        dates = list(islice(occurrences, RECURRENCE_MAX_OCCURRENCES + 1))
        if len(dates) > RECURRENCE_MAX_OCCURRENCES:
            raise InvalidPatternError(
                f"At most {RECURRENCE_MAX_OCCURRENCES} occurrences can be booked at once",
                details={"end_date": str(pattern.end_date)},
            )
        return dates

    def preview_recurring(self, start_date: date, pattern: RecurringPattern) -> OccurrencePreview:
        if pattern.end_date is None and pattern.occurrences is None:
            return preview(start_date, pattern, limit=RECURRENCE_PREVIEW_COUNT)

        dates = self._series_dates(start_date, pattern)
        return OccurrencePreview(
            dates=dates[:RECURRENCE_PREVIEW_COUNT],
            total=len(dates),
            truncated=len(dates) > RECURRENCE_PREVIEW_COUNT,
        )

    async def create_recurring_bookings(self, data: RecurringBookingCreate) -> BatchBookingResult:
        """
        Create one booking per occurrence of `data.pattern`.

        Occurrences that clash with existing bookings are skipped and
        reported; the rest are written under a shared series_id.
        """
        pattern = data.pattern
        validate_pattern(pattern, require_bound=True)
        dates = self._series_dates(data.date, pattern)
        await self._require_court(data.court_id)

        if not dates:
            return BatchBookingResult(created=0, skipped=0)

        candidates = [
            BookingInterval(
                court_id=str(data.court_id),
                date=day,
                start_time=data.start_time,
                end_time=data.end_time,
            )
            for day in dates
        ]
        existing = await db.list_bookings(
            court_id=str(data.court_id),
            date_from=dates[0],
            date_to=dates[-1],
            include_cancelled=False,
        )
        existing_ids = {b.interval: b.id for b in existing}
        clashes = {
            candidate.date: existing_ids.get(other)
            for candidate, other in find_conflicts(candidates, list(existing_ids))
        }

        base = BookingCreate.model_validate(data.model_dump(exclude={"pattern"}))
        series_id = uuid4()
        created: list[Booking] = []
        conflicts: list[BookingConflict] = []
        errors: list[str] = []

        for day in dates:
            if day in clashes:
                conflicts.append(
                    BookingConflict(
                        date=day,
                        start_time=data.start_time,
                        end_time=data.end_time,
                        existing_booking_id=clashes[day],
                    )
                )
                continue
            try:
                booking = await db.create_booking(
                    base.model_copy(update={"date": day}),
                    is_recurring=True,
                    recurring_pattern=pattern,
                    series_id=series_id,
                )
            except BookingConflictError as exc:
                # Another writer took the slot after the batch check
                conflicts.append(
                    BookingConflict(date=day, start_time=data.start_time, end_time=data.end_time)
                )
                errors.append(f"{day.isoformat()}: {exc.message}")
                continue
            except TransientWriteError as exc:
                errors.append(f"{day.isoformat()}: {exc.message}")
                continue
            created.append(booking)

        logger.info(
            "Recurring series %s: %d created, %d skipped",
            series_id, len(created), len(dates) - len(created),
        )
        return BatchBookingResult(
            created=len(created),
            skipped=len(dates) - len(created),
            series_id=series_id if created else None,
            conflicts=conflicts,
            errors=errors,
            bookings=created,
        )

    # ── Group schedules ───────────────────────────────────────────────

    async def regenerate_group_bookings(
        self,
        group_id: str,
        schedule: GroupScheduleRequest,
        today: date,
    ) -> GroupRegenerationResult:
        """
        Replace a group's future bookings with `weeks_ahead` weeks of its
        weekly schedule. Slots that clash with other bookings are skipped.
        """
        start = schedule.start_date or today
        weeks = schedule.weeks_ahead or GROUP_WEEKS_AHEAD

        if schedule.slots:
            await self._require_court(schedule.court_id)
            for court_id in {slot.court_id for slot in schedule.slots if slot.court_id}:
                await self._require_court(court_id)

        deleted = await db.delete_future_group_bookings(group_id, start)
        if not schedule.slots:
            logger.info("Group %s schedule cleared, %d bookings deleted", group_id, deleted)
            return GroupRegenerationResult(deleted=deleted)

        proposals = []
        for slot in schedule.slots:
            pattern = WeeklyPattern(days_of_week=[slot.day], occurrences=weeks)
            for day in expand(start, pattern, max_iterations=walk_limit(start, pattern)):
                proposals.append((day, slot, pattern))
        proposals.sort(key=lambda p: (p[0], p[1].start_time))

        last_day = proposals[-1][0]
        existing_by_court: dict[str, list[BookingInterval]] = {}
        created: list[Booking] = []
        conflicts: list[BookingConflict] = []
        errors: list[str] = []

        for day, slot, pattern in proposals:
            court_id = slot.court_id or schedule.court_id
            key = str(court_id)
            if key not in existing_by_court:
                existing_by_court[key] = [
                    b.interval
                    for b in await db.list_bookings(
                        court_id=key, date_from=start, date_to=last_day, include_cancelled=False
                    )
                ]

            interval = BookingInterval(
                court_id=key, date=day, start_time=slot.start_time, end_time=slot.end_time
            )
            conflict = BookingConflict(date=day, start_time=slot.start_time, end_time=slot.end_time)
            if find_overlap(interval, existing_by_court[key]) is not None:
                conflicts.append(conflict)
                continue

            try:
                booking = await db.create_booking(
                    BookingCreate(
                        court_id=court_id,
                        date=day,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        booking_type="group_class",
                        group_id=group_id,
                        coach_id=schedule.coach_id,
                    ),
                    is_recurring=True,
                    recurring_pattern=pattern,
                )
            except BookingConflictError:
                # Another writer took the slot after the advisory check
                conflicts.append(conflict)
                continue
            except TransientWriteError as exc:
                logger.warning(
                    "Group %s booking on %s %s not created: %s",
                    group_id, day, slot.start_time, exc.message,
                )
                errors.append(f"{day.isoformat()} {slot.start_time}: {exc.message}")
                continue
            existing_by_court[key].append(interval)
            created.append(booking)

        logger.info(
            "Group %s regenerated: %d deleted, %d created, %d conflicts, %d failed",
            group_id, deleted, len(created), len(conflicts), len(errors),
        )
        return GroupRegenerationResult(
            deleted=deleted, created=created, conflicts=conflicts, errors=errors
        )


# Global booking service instance
booking_service = BookingService()
