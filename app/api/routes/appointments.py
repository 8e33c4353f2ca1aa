import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_staff_user
from app.api.schemas.appointment import (
    BookAppointmentRequest,
    CancelAppointmentRequest,
    UpdateStatusRequest,
)
from app.core.db import get_session
from app.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from app.models.user import User
from app.services.appointment_service import (
    cancel_appointment,
    create_appointment,
    get_appointment,
    list_appointments_for_user,
    list_managed_appointments,
    update_appointment_status,
)
from app.services.notification_service import notify_booking_cancelled, notify_booking_confirmed
from app.services.slot_service import format_slot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic(
        id=a.id,
        user_id=a.user_id,
        professional_id=a.professional_id,
        specialty_id=a.specialty_id,
        procedure=a.procedure,
        date=a.appointment_date,
        time=format_slot(a.appointment_time),
        status=a.status,
        notes=a.notes,
        cancel_reason=a.cancel_reason,
        cancelled_at=a.cancelled_at,
        completed_at=a.completed_at,
        created_at=a.created_at,
    )


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> AppointmentPublic:
    """Claim a slot. 409 (code slot_conflict) means someone else holds it now:
    reload availability before offering another time."""
    data = AppointmentCreate(
        professional_id=body.professional_id,
        specialty_id=body.specialty_id,
        procedure=body.procedure,
        appointment_date=body.date,
        appointment_time=body.time,
        notes=body.notes,
    )
    appointment = await create_appointment(session, current_user.id, data)
    # Runs after the insert committed; failures are logged only
    background_tasks.add_task(notify_booking_confirmed, appointment.id)
    return _to_public(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_my_appointments(
    from_date: date | None = Query(None, alias="from_date"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> list[AppointmentPublic]:
    appointments = await list_appointments_for_user(session, current_user.id, from_date=from_date)
    return [_to_public(a) for a in appointments]


@router.get("/manage", response_model=list[AppointmentPublic])
async def list_appointments_for_staff(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    professional_id: UUID | None = Query(None),
    on_date: date | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_staff_user),
) -> list[AppointmentPublic]:
    """Admins see every appointment; professionals see their own agenda."""
    appointments = await list_managed_appointments(
        session,
        current_user,
        status=status_filter,
        professional_id=professional_id,
        on_date=on_date,
    )
    return [_to_public(a) for a in appointments]


@router.patch("/{appointment_id}/cancel", response_model=AppointmentPublic)
async def cancel_my_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    body: CancelAppointmentRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> AppointmentPublic:
    appointment = await cancel_appointment(
        session, appointment_id, current_user, reason=body.reason if body else None
    )
    background_tasks.add_task(notify_booking_cancelled, appointment.id)
    return _to_public(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic)
async def change_appointment_status(
    appointment_id: UUID,
    body: UpdateStatusRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_staff_user),
) -> AppointmentPublic:
    """Staff status change. Reactivating a cancelled appointment can answer 409
    when the slot was booked again in the meantime."""
    previous_status = (await get_appointment(session, appointment_id)).status
    appointment = await update_appointment_status(
        session, appointment_id, current_user, body.status, reason=body.reason
    )
    cancelled = AppointmentStatus.CANCELLED.value
    if appointment.status == cancelled and previous_status != cancelled:
        background_tasks.add_task(notify_booking_cancelled, appointment.id)
    return _to_public(appointment)
