# src/credenciales/crud/member.py

import logging
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from credenciales.core import errors
from credenciales.core.dates import utcnow
from credenciales.models.member import Address, Member, VigencyEvent
from credenciales.schemas.member import MemberCreate, MemberUpdate

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20
RECENT_EVENTS = 10
FOLIO_WIDTH = 4

NAME_FIELDS = (Member.first_name, Member.last_name, Member.second_last_name)
IDENTIFIER_FIELDS = (Member.phone_mx, Member.license_number, Member.badge_number, Member.folio)


async def get_member(db: AsyncSession, member_id: str) -> Member:
    member = await db.get(Member, member_id)
    if member is None:
        raise errors.NotFound("Member not found")
    return member


async def get_address(db: AsyncSession, member_id: str) -> Optional[Address]:
    result = await db.execute(select(Address).where(Address.member_id == member_id))
    return result.scalar_one_or_none()


async def get_addresses(db: AsyncSession, member_ids: list[str]) -> dict[str, Address]:
    if not member_ids:
        return {}
    result = await db.execute(select(Address).where(Address.member_id.in_(member_ids)))
    return {address.member_id: address for address in result.scalars().all()}


async def next_folio(db: AsyncSession) -> str:
    result = await db.execute(select(Member.folio).where(Member.folio.is_not(None)))
    numbers = [int(folio) for folio in result.scalars().all() if folio.isdigit()]
    return str(max(numbers, default=0) + 1).zfill(FOLIO_WIDTH)


async def create_member(db: AsyncSession, data: MemberCreate) -> tuple[Member, Address]:
    """Member and address are committed together or not at all."""
    fields = data.model_dump(exclude={"address"})
    if not fields.get("folio"):
        fields["folio"] = await next_folio(db)

    now = utcnow()
    member = Member(**fields, created_at=now, updated_at=now)
    db.add(member)
    await db.flush()
    address = Address(member_id=member.id, **data.address.model_dump())
    db.add(address)
    await db.commit()
    await db.refresh(member)
    await db.refresh(address)
    logger.info("Created member %s with folio %s", member.id, member.folio)
    return member, address


async def update_member(
    db: AsyncSession, member_id: str, data: MemberUpdate
) -> tuple[Member, Optional[Address]]:
    member = await get_member(db, member_id)
    changes = data.model_dump(exclude_unset=True, exclude={"address"})
    for name, value in changes.items():
        setattr(member, name, value)

    address = await get_address(db, member_id)
    if data.address is not None:
        address_fields = data.address.model_dump()
        if address is None:
            address = Address(member_id=member_id, **address_fields)
            db.add(address)
        else:
            for name, value in address_fields.items():
                setattr(address, name, value)

    member.updated_at = utcnow()
    await db.commit()
    await db.refresh(member)
    if address is not None:
        await db.refresh(address)
    return member, address


def _search_condition(query: str):
    tokens = query.split()
    if not tokens:
        raise errors.ValidationError("Search query is required")

    if len(tokens) == 1:
        token = tokens[0]
        return or_(
            *(field.icontains(token, autoescape=True) for field in NAME_FIELDS),
            *(field.contains(token, autoescape=True) for field in IDENTIFIER_FIELDS),
        )

    # Every word must hit some name field; identifiers only match single-word queries.
    return and_(*(
        or_(*(field.icontains(token, autoescape=True) for field in NAME_FIELDS))
        for token in tokens
    ))


async def search_members(db: AsyncSession, query: str, limit: int = SEARCH_LIMIT) -> list[Member]:
    result = await db.execute(
        select(Member)
        .where(_search_condition(query))
        .order_by(Member.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_vigency_events(
    db: AsyncSession, member_id: str, limit: Optional[int] = None
) -> list[VigencyEvent]:
    statement = (
        select(VigencyEvent)
        .where(VigencyEvent.member_id == member_id)
        .order_by(VigencyEvent.applied_at.desc(), VigencyEvent.id.desc())
    )
    if limit is not None:
        statement = statement.limit(limit)
    result = await db.execute(statement)
    return list(result.scalars().all())


async def apply_vigency(db: AsyncSession, member_id: str, note: Optional[str] = None) -> VigencyEvent:
    """Record a renewal. The vigencia date itself is edited separately."""
    member = await get_member(db, member_id)
    event = VigencyEvent(member_id=member_id, note=note, applied_at=utcnow())
    db.add(event)
    member.last_vigency_renewal_at = event.applied_at
    member.updated_at = utcnow()
    await db.commit()
    await db.refresh(event)
    logger.info("Applied vigency event %d to member %s", event.id, member_id)
    return event


async def set_member_file(db: AsyncSession, member: Member, attribute: str, relative_path: str) -> Member:
    setattr(member, attribute, relative_path)
    member.updated_at = utcnow()
    await db.commit()
    await db.refresh(member)
    return member
