from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user
from app.core.db import get_session
from app.models.professional import ProfessionalCreate, ProfessionalPublic
from app.models.specialty import SpecialtyPublic
from app.models.user import User
from app.services.directory_service import create_professional, list_professionals, list_specialties

router = APIRouter(tags=["directory"])


@router.get("/specialties", response_model=list[SpecialtyPublic])
async def specialties(session: AsyncSession = Depends(get_session)) -> list[SpecialtyPublic]:
    rows = await list_specialties(session)
    return [
        SpecialtyPublic(id=s.id, name=s.name, description=s.description, duration_minutes=s.duration_minutes)
        for s in rows
    ]


@router.get("/professionals", response_model=list[ProfessionalPublic])
async def professionals(
    specialty_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[ProfessionalPublic]:
    return await list_professionals(session, specialty_id=specialty_id)


@router.post("/professionals", response_model=ProfessionalPublic, status_code=status.HTTP_201_CREATED)
async def add_professional(
    body: ProfessionalCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> ProfessionalPublic:
    """Admin only. With account_password set, also creates the professional's login."""
    return await create_professional(session, body)
