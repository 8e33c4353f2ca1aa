"""Professionals and specialties: static reference data read by the booking flow."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import BookingValidationError
from app.models.professional import Professional, ProfessionalCreate, ProfessionalPublic
from app.models.specialty import ProfessionalSpecialty, Specialty
from app.models.user import UserCreate, UserRole
from app.services.auth_service import create_user, get_user_by_email

logger = logging.getLogger(__name__)


async def list_specialties(session: AsyncSession) -> list[Specialty]:
    result = await session.execute(
        select(Specialty).where(Specialty.active == True).order_by(Specialty.name)  # noqa: E712
    )
    return list(result.scalars().all())


async def get_professional(session: AsyncSession, professional_id: UUID) -> Professional | None:
    return await session.get(Professional, professional_id)


async def specialty_names_by_professional(
    session: AsyncSession, professional_ids: list[UUID]
) -> dict[UUID, list[str]]:
    if not professional_ids:
        return {}
    result = await session.execute(
        select(ProfessionalSpecialty.professional_id, Specialty.name)
        .join(Specialty, Specialty.id == ProfessionalSpecialty.specialty_id)
        .where(ProfessionalSpecialty.professional_id.in_(professional_ids))
        .order_by(Specialty.name)
    )
    names: dict[UUID, list[str]] = {pid: [] for pid in professional_ids}
    for pid, name in result.all():
        names[pid].append(name)
    return names


async def list_professionals(
    session: AsyncSession, specialty_id: UUID | None = None
) -> list[ProfessionalPublic]:
    q = select(Professional).where(Professional.active == True).order_by(Professional.name)  # noqa: E712
    if specialty_id:
        q = q.join(
            ProfessionalSpecialty, ProfessionalSpecialty.professional_id == Professional.id
        ).where(ProfessionalSpecialty.specialty_id == specialty_id)
    result = await session.execute(q)
    professionals = list(result.scalars().all())
    names = await specialty_names_by_professional(session, [p.id for p in professionals])
    return [to_public(p, names.get(p.id, [])) for p in professionals]


def to_public(professional: Professional, specialties: list[str]) -> ProfessionalPublic:
    return ProfessionalPublic(
        id=professional.id,
        name=professional.name,
        email=professional.email,
        phone=professional.phone,
        user_id=professional.user_id,
        specialties=specialties,
    )


async def create_professional(session: AsyncSession, data: ProfessionalCreate) -> ProfessionalPublic:
    """Create a professional, link its specialties and optionally a login account.

    The account gets the professional role so its owner can manage their own agenda.
    """
    name = data.name.strip()
    if not name:
        raise BookingValidationError("name is required")
    specialty_ids = list(dict.fromkeys(data.specialty_ids))
    if specialty_ids:
        result = await session.execute(select(Specialty.id).where(Specialty.id.in_(specialty_ids)))
        unknown = set(specialty_ids) - {row[0] for row in result.all()}
        if unknown:
            raise BookingValidationError(f"Unknown specialty: {', '.join(sorted(str(u) for u in unknown))}")
    professional = Professional(name=name, email=data.email, phone=data.phone)
    if data.account_password:
        if not data.email:
            raise BookingValidationError("email is required to create an account")
        if await get_user_by_email(session, data.email):
            raise BookingValidationError("An account with this email already exists")
        user = await create_user(
            session,
            UserCreate(
                email=data.email,
                password=data.account_password,
                name=name,
                role=UserRole.PROFESSIONAL,
            ),
        )
        professional.user_id = user.id
    session.add(professional)
    await session.flush()
    for specialty_id in specialty_ids:
        session.add(ProfessionalSpecialty(professional_id=professional.id, specialty_id=specialty_id))
    await session.flush()
    names = await specialty_names_by_professional(session, [professional.id])
    logger.info("Professional %s created (account: %s)", professional.id, bool(professional.user_id))
    return to_public(professional, names[professional.id])
