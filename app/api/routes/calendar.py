import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user
from app.core.db import get_session
from app.models.calendar import (
    AvailableDayCreate,
    AvailableDayPublic,
    BlockedDayCreate,
    BlockedDayPublic,
    SpecialtyBlockCreate,
    SpecialtyBlockPublic,
)
from app.models.user import User
from app.services import calendar_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/calendar", tags=["calendar"])


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


@router.get("/blocked-days", response_model=list[BlockedDayPublic])
async def blocked_days(
    professional_id: UUID | None = Query(None),
    from_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[BlockedDayPublic]:
    rows = await calendar_service.list_blocked_days(session, professional_id=professional_id, from_date=from_date)
    return [BlockedDayPublic.model_validate(r, from_attributes=True) for r in rows]


@router.post("/blocked-days", response_model=BlockedDayPublic, status_code=status.HTTP_201_CREATED)
async def block_day(
    body: BlockedDayCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> BlockedDayPublic:
    """Admin only. Without professional_id the whole clinic is closed that day.

    Appointments already on the day are kept; only new bookings are refused.
    """
    row = await calendar_service.add_blocked_day(session, body)
    return BlockedDayPublic.model_validate(row, from_attributes=True)


@router.delete("/blocked-days/{blocked_day_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_day(
    blocked_day_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> None:
    if not await calendar_service.remove_blocked_day(session, blocked_day_id):
        raise _not_found("Blocked day")


@router.get("/available-days", response_model=list[AvailableDayPublic])
async def available_days(
    professional_id: UUID = Query(...),
    from_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[AvailableDayPublic]:
    rows = await calendar_service.list_available_days(session, professional_id, from_date=from_date)
    return [AvailableDayPublic.model_validate(r, from_attributes=True) for r in rows]


@router.post("/available-days", response_model=AvailableDayPublic, status_code=status.HTTP_201_CREATED)
async def add_available_day(
    body: AvailableDayCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> AvailableDayPublic:
    """Admin only. Once a professional has working days in the booking window,
    every other day is closed for them."""
    row = await calendar_service.add_available_day(session, body)
    return AvailableDayPublic.model_validate(row, from_attributes=True)


@router.delete("/available-days/{available_day_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_available_day(
    available_day_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> None:
    if not await calendar_service.remove_available_day(session, available_day_id):
        raise _not_found("Available day")


@router.get("/specialty-blocks", response_model=list[SpecialtyBlockPublic])
async def specialty_blocks(
    user_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> list[SpecialtyBlockPublic]:
    rows = await calendar_service.list_specialty_blocks(session, user_id=user_id)
    return [SpecialtyBlockPublic.model_validate(r, from_attributes=True) for r in rows]


@router.put("/specialty-blocks", response_model=SpecialtyBlockPublic)
async def block_specialty(
    body: SpecialtyBlockCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> SpecialtyBlockPublic:
    row = await calendar_service.set_specialty_block(session, body)
    logger.info("Admin %s blocked user %s from specialty %s", admin.id, row.user_id, row.specialty_id)
    return SpecialtyBlockPublic.model_validate(row, from_attributes=True)


@router.delete("/specialty-blocks/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_specialty(
    block_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> None:
    if not await calendar_service.remove_specialty_block(session, block_id):
        raise _not_found("Specialty block")
