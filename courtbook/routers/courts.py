from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from courtbook import db
from courtbook.models import Court, CourtCreate

router = APIRouter(prefix="/api/courts", tags=["courts"])


@router.get(
    "",
    response_model=list[Court],
    operation_id="listCourts",
    summary="List courts",
)
async def list_courts(
    surface_type: str | None = Query(None),
    court_type: str | None = Query(None),
    active: bool | None = Query(None, description="Filter by bookable/unbookable"),
) -> list[Court]:
    return await db.list_courts(surface_type=surface_type, court_type=court_type, active=active)


@router.post(
    "",
    response_model=Court,
    status_code=status.HTTP_201_CREATED,
    operation_id="createCourt",
    summary="Add a court",
)
async def create_court(body: CourtCreate) -> Court:
    return await db.create_court(
        body.name,
        body.surface_type,
        body.court_type,
        is_active=body.is_active,
    )


@router.get(
    "/{court_id}",
    response_model=Court,
    operation_id="getCourt",
    summary="Get details of a specific court",
)
async def get_court(court_id: UUID) -> Court:
    court = await db.get_court(str(court_id))
    if court is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Court {court_id} not found",
        )
    return court
