"""
Time slot endpoints – the operating-window grid and calendar views.
"""

from datetime import date, datetime

from fastapi import APIRouter, Query

from courtbook import db
from courtbook.config import (
    CALENDAR_END_HOUR,
    CALENDAR_START_HOUR,
    DEFAULT_BOOKING_DURATION_MINUTES,
    SLOT_DURATION_MINUTES,
)
from courtbook.models import HHMM_PATTERN, DayGrid, TimeOptionsResponse, TimeSlot, WeekResponse
from courtbook.services.calendar import build_day_grid, week_dates
from courtbook.services.time_slots import (
    default_end_time,
    end_time_options,
    generate_slots,
    time_options,
)

router = APIRouter(prefix="/api", tags=["time-slots"])


@router.get(
    "/time-slots",
    response_model=list[TimeSlot],
    operation_id="listTimeSlots",
    summary="List the bookable slots of the operating window",
)
async def list_time_slots(
    start_hour: int = Query(CALENDAR_START_HOUR, description="First hour of the window"),
    end_hour: int = Query(CALENDAR_END_HOUR, description="Closing hour (exclusive)"),
    step_minutes: int = Query(SLOT_DURATION_MINUTES, description="Slot length in minutes"),
) -> list[TimeSlot]:
    return generate_slots(start_hour, end_hour, step_minutes)


@router.get(
    "/time-slots/options",
    response_model=TimeOptionsResponse,
    operation_id="getTimeOptions",
    summary="Start and end time choices for the booking form",
)
async def get_time_options(
    start_time: str | None = Query(None, pattern=HHMM_PATTERN, description="Chosen start time"),
) -> TimeOptionsResponse:
    options = time_options(CALENDAR_START_HOUR, CALENDAR_END_HOUR, SLOT_DURATION_MINUTES)
    end_options = end_time_options(start_time, options) if start_time else []
    # Start times outside the operating window get no end choices
    if not end_options:
        return TimeOptionsResponse(options=options)

    return TimeOptionsResponse(
        options=options,
        end_options=end_options,
        default_end_time=default_end_time(
            start_time, DEFAULT_BOOKING_DURATION_MINUTES, CALENDAR_END_HOUR
        ),
    )


@router.get(
    "/calendar/day",
    response_model=DayGrid,
    operation_id="getDayGrid",
    summary="Booking grid for one day, one column per active court",
)
async def get_day_grid(
    day: date | None = Query(None, alias="date", description="Day to show (defaults to today)"),
) -> DayGrid:
    day = day or date.today()
    courts = await db.list_courts(active=True)
    bookings = await db.list_bookings(date_from=day, date_to=day, include_cancelled=False)
    return build_day_grid(
        day,
        courts,
        bookings,
        now=datetime.now(),
        start_hour=CALENDAR_START_HOUR,
        end_hour=CALENDAR_END_HOUR,
        step_minutes=SLOT_DURATION_MINUTES,
    )


@router.get(
    "/calendar/week",
    response_model=WeekResponse,
    operation_id="getWeekDates",
    summary="Monday to Sunday of the week containing a date",
)
async def get_week(
    day: date | None = Query(None, alias="date", description="Any day of the week"),
) -> WeekResponse:
    return WeekResponse(dates=week_dates(day or date.today()))
