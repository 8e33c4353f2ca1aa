from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas.appointment import AvailableSlotsResponse, BookedSlotsResponse, SlotInfo
from app.core.db import get_session
from app.services.slot_service import format_slot, get_available_slots_for_date, get_booked_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/booked", response_model=BookedSlotsResponse)
async def booked_slots(
    professional_id: UUID = Query(...),
    date_param: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> BookedSlotsResponse:
    """Times already taken for the professional on that day.

    A storage failure surfaces as 503, never as an empty (all open) list.
    """
    booked = await get_booked_slots(session, professional_id, date_param)
    return BookedSlotsResponse(
        date=date_param,
        professional_id=professional_id,
        booked_slots=sorted(format_slot(t) for t in booked),
    )


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    professional_id: UUID = Query(...),
    date_param: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Return the configured slot catalog for the day with an available flag per slot.

    Closed days (outside the booking window, weekends, holidays, blocked days)
    come back with every slot unavailable and a closed_reason.
    """
    closed_reason, slots = await get_available_slots_for_date(session, professional_id, date_param)
    return AvailableSlotsResponse(
        date=date_param,
        professional_id=professional_id,
        slots=[SlotInfo(time=format_slot(t), available=avail) for t, avail in slots],
        closed_reason=closed_reason,
    )
