"""
Booking endpoints – single bookings, conflict checks and recurring series.
"""

from datetime import date, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from courtbook.dependencies import PaginationParams, paginate
from courtbook.errors import InvalidRangeError
from courtbook.models import (
    HHMM_PATTERN,
    BatchBookingResult,
    Booking,
    BookingCreate,
    BookingListResponse,
    BookingStatus,
    BookingType,
    BookingUpdate,
    ConflictCheckResult,
    OccurrencePreview,
    RecurringBookingCreate,
    RecurringPreviewRequest,
)
from courtbook.rate_limit import DEFAULT, WRITE, limiter
from courtbook.services.booking_service import booking_service

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


def _default_date_from() -> date:
    return date.today()


def _default_date_to() -> date:
    return date.today() + timedelta(days=7)


@router.get(
    "",
    response_model=BookingListResponse,
    operation_id="listBookings",
    summary="List bookings in a date range",
)
async def list_bookings(
    pagination: PaginationParams = Depends(PaginationParams),
    date_from: date | None = Query(None, description="Start date (inclusive, defaults to today)"),
    date_to: date | None = Query(None, description="End date (inclusive, defaults to +7 days)"),
    court_id: UUID | None = Query(None, description="Filter by court"),
    coach_id: str | None = Query(None, description="Filter by coach"),
    booking_status: BookingStatus | None = Query(None, alias="status"),
    booking_type: BookingType | None = Query(None),
    include_cancelled: bool = Query(True, description="Include cancelled bookings"),
) -> BookingListResponse:
    bookings = await booking_service.list_bookings(
        date_from or _default_date_from(),
        date_to or _default_date_to(),
        court_id=court_id,
        coach_id=coach_id,
        status=booking_status,
        booking_type=booking_type,
        include_cancelled=include_cancelled,
    )
    return paginate(bookings, pagination, BookingListResponse)


@router.get(
    "/conflicts",
    response_model=ConflictCheckResult,
    operation_id="checkBookingConflicts",
    summary="Check a proposed booking against existing court and coach bookings",
)
@limiter.limit(DEFAULT)
async def check_conflicts(
    request: Request,
    court_id: UUID,
    day: date = Query(..., alias="date"),
    start_time: str = Query(..., pattern=HHMM_PATTERN),
    end_time: str = Query(..., pattern=HHMM_PATTERN),
    coach_id: str | None = Query(None),
    exclude_booking_id: UUID | None = Query(None, description="Booking being edited"),
) -> ConflictCheckResult:
    if start_time >= end_time:
        raise InvalidRangeError(
            "start_time must be before end_time",
            details={"start_time": start_time, "end_time": end_time},
        )

    result = await booking_service.check_court_conflict(
        court_id, day, start_time, end_time, exclude_booking_id
    )
    if not result.has_conflict and coach_id:
        result = await booking_service.check_coach_conflict(
            coach_id, day, start_time, end_time, exclude_booking_id
        )
    return result


@router.post(
    "/recurring/preview",
    response_model=OccurrencePreview,
    operation_id="previewRecurringBooking",
    summary="Preview the first dates of a recurring pattern",
)
async def preview_recurring(body: RecurringPreviewRequest) -> OccurrencePreview:
    return booking_service.preview_recurring(body.start_date, body.pattern)


@router.post(
    "/recurring",
    response_model=BatchBookingResult,
    status_code=status.HTTP_201_CREATED,
    operation_id="createRecurringBookings",
    summary="Book every occurrence of a recurring pattern",
)
@limiter.limit(WRITE)
async def create_recurring_bookings(
    request: Request, body: RecurringBookingCreate
) -> BatchBookingResult:
    return await booking_service.create_recurring_bookings(body)


@router.post(
    "",
    response_model=Booking,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBooking",
    summary="Book a court",
)
@limiter.limit(WRITE)
async def create_booking(request: Request, body: BookingCreate) -> Booking:
    return await booking_service.create_booking(body)


@router.get(
    "/{booking_id}",
    response_model=Booking,
    operation_id="getBooking",
    summary="Get details of a specific booking",
)
async def get_booking(booking_id: UUID) -> Booking:
    return await booking_service.get_booking(booking_id)


@router.patch(
    "/{booking_id}",
    response_model=Booking,
    operation_id="updateBooking",
    summary="Change a booking",
)
@limiter.limit(WRITE)
async def update_booking(request: Request, booking_id: UUID, body: BookingUpdate) -> Booking:
    return await booking_service.update_booking(booking_id, body)


@router.post(
    "/{booking_id}/cancel",
    response_model=Booking,
    operation_id="cancelBooking",
    summary="Cancel a booking, keeping it on record",
)
async def cancel_booking(booking_id: UUID) -> Booking:
    return await booking_service.cancel_booking(booking_id)


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteBooking",
    summary="Delete a booking",
)
async def delete_booking(booking_id: UUID) -> Response:
    await booking_service.delete_booking(booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
