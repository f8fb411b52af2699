# src/credenciales/models/member.py

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field

from credenciales.core.dates import utcnow


def new_member_id() -> str:
    return uuid4().hex


class Member(SQLModel, table=True):
    __tablename__ = "member"

    id: str = Field(default_factory=new_member_id, primary_key=True, max_length=32)
    first_name: str = Field(nullable=False, index=True)
    last_name: str = Field(nullable=False, index=True)
    second_last_name: Optional[str] = Field(default=None, index=True)
    dob: date = Field(nullable=False)
    vigencia: Optional[date] = Field(default=None)
    phone_mx: str = Field(nullable=False, max_length=10)
    license_number: str = Field(nullable=False, index=True)
    badge_number: str = Field(nullable=False, index=True)
    folio: Optional[str] = Field(default=None, index=True)
    photo_path: Optional[str] = Field(default=None)
    signature_path: Optional[str] = Field(default=None)
    last_vigency_renewal_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Address(SQLModel, table=True):
    __tablename__ = "address"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: str = Field(foreign_key="member.id", ondelete="CASCADE", unique=True, nullable=False)
    street: str
    exterior_no: Optional[str] = None
    interior_no: Optional[str] = None
    neighborhood: str
    city: str
    municipality: str
    state: str
    postal_code: str = Field(max_length=5)
    references: Optional[str] = None


class VigencyEvent(SQLModel, table=True):
    """Append-only record of each renewal applied to a member."""

    __tablename__ = "vigency_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: str = Field(foreign_key="member.id", ondelete="CASCADE", nullable=False, index=True)
    note: Optional[str] = None
    applied_at: datetime = Field(default_factory=utcnow, index=True)
