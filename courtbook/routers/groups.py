"""
Group class endpoints – a group's weekly schedule and its generated bookings.
"""

from datetime import date

from fastapi import APIRouter, Request, status

from courtbook import db
from courtbook.models import Booking, GroupRegenerationResult, GroupScheduleRequest
from courtbook.rate_limit import WRITE, limiter
from courtbook.services.booking_service import booking_service

router = APIRouter(prefix="/api/groups/{group_id}", tags=["groups"])


@router.get(
    "/bookings",
    response_model=list[Booking],
    operation_id="listGroupBookings",
    summary="List a group's active bookings",
)
async def list_group_bookings(group_id: str) -> list[Booking]:
    return await db.list_bookings(group_id=group_id, include_cancelled=False)


@router.post(
    "/bookings/regenerate",
    response_model=GroupRegenerationResult,
    status_code=status.HTTP_200_OK,
    operation_id="regenerateGroupBookings",
    summary="Replace a group's future bookings from its weekly schedule",
)
@limiter.limit(WRITE)
async def regenerate_group_bookings(
    request: Request, group_id: str, body: GroupScheduleRequest
) -> GroupRegenerationResult:
    return await booking_service.regenerate_group_bookings(group_id, body, today=date.today())
