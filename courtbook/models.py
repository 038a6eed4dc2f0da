"""Pydantic models for the court booking calendar API."""

from datetime import date, datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Models with a field called `date` shadow the type inside their class body,
# so date annotations go through this alias.
CalendarDate = date

HHMM_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"

BookingType = Literal["rental", "group_class", "private_lesson"]
BookingStatus = Literal["pending", "confirmed", "cancelled"]
CourtType = Literal["indoor", "outdoor"]
SlotStatus = Literal["free", "booked", "past"]

DayOfWeek = Annotated[int, Field(ge=0, le=6)]


def _check_time_order(start_time: str | None, end_time: str | None) -> None:
    # Zero-padded HH:MM strings order the same way as the times they name.
    if start_time is not None and end_time is not None and start_time >= end_time:
        raise ValueError("start_time must be before end_time")


# ── Time slots ────────────────────────────────────────────────────────────


class TimeSlot(BaseModel):
    """One bookable step of the operating window."""

    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Slot start (HH:MM)")
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)
    is_half_hour: bool = Field(..., description="True when the slot starts at :30")


class BookingInterval(BaseModel):
    """Half-open [start_time, end_time) interval on one court and date."""

    model_config = ConfigDict(frozen=True)

    court_id: str = Field(..., description="Court identifier")
    date: CalendarDate = Field(..., description="Calendar date of the booking")
    start_time: str = Field(..., pattern=HHMM_PATTERN, description="Start time (HH:MM)")
    end_time: str = Field(..., pattern=HHMM_PATTERN, description="End time (HH:MM)")

    @model_validator(mode="after")
    def _validate_order(self) -> "BookingInterval":
        _check_time_order(self.start_time, self.end_time)
        return self


# ── Recurrence ────────────────────────────────────────────────────────────


class _PatternBounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    end_date: CalendarDate | None = Field(None, description="Last allowed date (inclusive)")
    occurrences: int | None = Field(None, ge=1, description="Number of occurrences to produce")
    exceptions: frozenset[CalendarDate] = Field(
        default_factory=frozenset, description="Dates to skip"
    )


class DailyPattern(_PatternBounds):
    frequency: Literal["daily"] = "daily"


class WeeklyPattern(_PatternBounds):
    frequency: Literal["weekly"] = "weekly"
    days_of_week: list[DayOfWeek] = Field(
        default_factory=list, description="Days to book (0=Sunday, 6=Saturday)"
    )


class BiweeklyPattern(_PatternBounds):
    frequency: Literal["biweekly"] = "biweekly"
    days_of_week: list[DayOfWeek] = Field(
        default_factory=list, description="Days to book every other week (0=Sunday)"
    )


class MonthlyPattern(_PatternBounds):
    frequency: Literal["monthly"] = "monthly"


RecurringPattern = Annotated[
    Union[DailyPattern, WeeklyPattern, BiweeklyPattern, MonthlyPattern],
    Field(discriminator="frequency"),
]


class OccurrencePreview(BaseModel):
    dates: list[CalendarDate] = Field(..., description="First occurrence dates")
    total: int = Field(..., description="Number of dates the pattern expands to")
    truncated: bool = Field(..., description="True when more dates exist than are shown")


class RecurringPreviewRequest(BaseModel):
    start_date: CalendarDate
    pattern: RecurringPattern


# ── Courts ────────────────────────────────────────────────────────────────


class CourtCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Court name")
    surface_type: str = Field("hard", description="Court surface type")
    court_type: CourtType = Field("outdoor", description="Indoor or outdoor")
    is_active: bool = Field(True, description="Whether the court can be booked")


class Court(CourtCreate):
    id: UUID = Field(..., description="Unique court identifier")
    created_at: datetime


# ── Bookings ──────────────────────────────────────────────────────────────


class BookingCreate(BaseModel):
    court_id: UUID = Field(..., description="Court to book")
    date: CalendarDate = Field(..., description="Booking date")
    start_time: str = Field(..., pattern=HHMM_PATTERN, description="Start time (HH:MM)")
    end_time: str = Field(..., pattern=HHMM_PATTERN, description="End time (HH:MM)")
    booking_type: BookingType = "rental"
    group_id: str | None = None
    player_id: str | None = None
    coach_id: str | None = None
    notes: str | None = None
    status: BookingStatus = "confirmed"

    @model_validator(mode="after")
    def _validate_order(self):
        _check_time_order(self.start_time, self.end_time)
        return self


class BookingUpdate(BaseModel):
    """Partial update; only the fields that are set are written."""

    court_id: UUID | None = None
    date: CalendarDate | None = None
    start_time: str | None = Field(None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(None, pattern=HHMM_PATTERN)
    booking_type: BookingType | None = None
    group_id: str | None = None
    player_id: str | None = None
    coach_id: str | None = None
    notes: str | None = None
    status: BookingStatus | None = None


class Booking(BookingCreate):
    id: UUID = Field(..., description="Unique booking identifier")
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None
    series_id: UUID | None = Field(None, description="Shared by bookings of one recurring batch")
    created_at: datetime
    updated_at: datetime

    @property
    def interval(self) -> BookingInterval:
        return BookingInterval(
            court_id=str(self.court_id),
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class RecurringBookingCreate(BookingCreate):
    pattern: RecurringPattern


class ConflictCheckResult(BaseModel):
    has_conflict: bool
    conflict_type: Literal["court", "coach"] | None = None
    message: str | None = None
    conflicting_booking_id: UUID | None = None


class BookingConflict(BaseModel):
    date: CalendarDate
    start_time: str
    end_time: str
    existing_booking_id: UUID | None = None


class BatchBookingResult(BaseModel):
    created: int = Field(..., description="Number of bookings written")
    skipped: int = Field(..., description="Occurrences not written (conflicts or failures)")
    series_id: UUID | None = None
    conflicts: list[BookingConflict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)


# ── Group schedules ───────────────────────────────────────────────────────


class ScheduleSlot(BaseModel):
    day: DayOfWeek = Field(..., description="Day of week (0=Sunday)")
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: str = Field(..., pattern=HHMM_PATTERN)
    court_id: UUID | None = Field(None, description="Overrides the schedule's court")

    @model_validator(mode="after")
    def _validate_order(self):
        _check_time_order(self.start_time, self.end_time)
        return self


class GroupScheduleRequest(BaseModel):
    court_id: UUID
    coach_id: str | None = None
    slots: list[ScheduleSlot] = Field(default_factory=list)
    weeks_ahead: int | None = Field(None, ge=1, le=52)
    start_date: CalendarDate | None = None


class GroupRegenerationResult(BaseModel):
    deleted: int
    created: list[Booking] = Field(default_factory=list)
    conflicts: list[BookingConflict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="Writes that failed and can be retried")


# ── Calendar grid ─────────────────────────────────────────────────────────


class GridSlot(BaseModel):
    time: str
    status: SlotStatus
    booking_id: UUID | None = None
    is_booking_start: bool = False
    span: int = Field(1, description="Grid rows covered when this slot starts a booking")


class CourtColumn(BaseModel):
    court_id: UUID
    court_name: str
    slots: list[GridSlot]


class DayGrid(BaseModel):
    date: CalendarDate
    slots: list[TimeSlot]
    courts: list[CourtColumn]


class WeekResponse(BaseModel):
    dates: list[CalendarDate]


# ── Responses ─────────────────────────────────────────────────────────────


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class BookingListResponse(BaseModel):
    items: list[Booking]
    meta: PaginationMeta


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(..., description="Current timestamp")


class TimeOptionsResponse(BaseModel):
    """Start/end choices for the booking form's time pickers."""
    options: list[str] = Field(..., description="Selectable times, closing time included")
    end_options: list[str] = Field(default_factory=list, description="End times after start_time")
    default_end_time: str | None = Field(None, description="End time for the default duration")
