# src/credenciales/schemas/member.py

from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from credenciales.core.dates import parse_calendar_date
from credenciales.schemas.base import CamelModel

PHONE_PATTERN = r"^\d{10}$"
POSTAL_CODE_PATTERN = r"^\d{5}$"


def _calendar_date(value: Any) -> Any:
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    parsed = parse_calendar_date(value)
    if parsed is None:
        raise ValueError("Invalid date, expected YYYY-MM-DD")
    return parsed


class AddressIn(CamelModel):
    street: str = Field(min_length=1)
    exterior_no: Optional[str] = None
    interior_no: Optional[str] = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    municipality: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(pattern=POSTAL_CODE_PATTERN)
    references: Optional[str] = None


class AddressRead(AddressIn):
    pass


class MemberCreate(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    second_last_name: Optional[str] = None
    dob: date
    vigencia: Optional[date] = None
    phone_mx: str = Field(pattern=PHONE_PATTERN)
    license_number: str = Field(min_length=1)
    badge_number: str = Field(min_length=1)
    folio: Optional[str] = Field(default=None, min_length=1)
    address: AddressIn

    @field_validator("dob", "vigencia", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _calendar_date(v)


# Fields a partial update may set but never clear.
REQUIRED_MEMBER_FIELDS = (
    "first_name", "last_name", "dob", "phone_mx", "license_number", "badge_number", "address",
)


class MemberUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    second_last_name: Optional[str] = None
    dob: Optional[date] = None
    vigencia: Optional[date] = None
    phone_mx: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    license_number: Optional[str] = Field(default=None, min_length=1)
    badge_number: Optional[str] = Field(default=None, min_length=1)
    folio: Optional[str] = Field(default=None, min_length=1)
    address: Optional[AddressIn] = None

    @field_validator("dob", "vigencia", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _calendar_date(v)

    @model_validator(mode="after")
    def no_null_required_fields(self) -> "MemberUpdate":
        for name in REQUIRED_MEMBER_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class VigencyEventRead(CamelModel):
    id: int
    note: Optional[str] = None
    applied_at: datetime


class VigencyApply(CamelModel):
    note: Optional[str] = None


class MemberRead(CamelModel):
    id: str
    first_name: str
    last_name: str
    second_last_name: Optional[str] = None
    dob: date
    vigencia: Optional[date] = None
    phone_mx: str
    license_number: str
    badge_number: str
    folio: Optional[str] = None
    photo_path: Optional[str] = None
    signature_path: Optional[str] = None
    last_vigency_renewal_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    address: Optional[AddressRead] = None


class MemberDetail(MemberRead):
    vigency_events: list[VigencyEventRead] = []


class MemberEnvelope(CamelModel):
    user: MemberDetail
    message: Optional[str] = None


class MemberSearchResult(CamelModel):
    users: list[MemberRead]


class VigencyEventEnvelope(CamelModel):
    vigency_event: VigencyEventRead
    message: str = "Vigency applied"


class VigencyEventList(CamelModel):
    vigency_events: list[VigencyEventRead]


class UploadResult(CamelModel):
    path: str
    message: str


class PublicMember(CamelModel):
    """Only what a QR scan may reveal."""

    id: str
    first_name: str
    last_name: str
    second_last_name: Optional[str] = None
    vigencia: Optional[date] = None


class ValidationResult(CamelModel):
    user: PublicMember
    valid: bool


class CardData(CamelModel):
    id: str
    display_name: str
    dob: str
    age: Optional[int] = None
    vigencia: str
    vigencia_long: str
    valid: bool
    phone: str
    folio: str
    license_number: str
    badge_number: str
    photo_url: Optional[str] = None
    signature_url: Optional[str] = None
    president_signature_url: Optional[str] = None
    validation_url: str
    adjuster_colima: str
    adjuster_tecoman: str
    adjuster_manzanillo: str


class CardEnvelope(CamelModel):
    card: CardData
