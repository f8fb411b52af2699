# src/credenciales/service/card.py
"""
Data for the printable two-sided credential.

Rendering and rasterizing the card happen in the browser; this only
prepares the already-formatted values it prints.
"""
import re
from datetime import date
from typing import Optional

from credenciales.core.dates import calculate_age, format_date, format_date_long, is_vigencia_valid
from credenciales.models.member import Member
from credenciales.models.settings import AppSettings
from credenciales.schemas.member import CardData

DEFAULT_FOLIO = "0000"


def format_member_name(member: Member) -> str:
    parts = [member.first_name, member.last_name.upper()]
    if member.second_last_name:
        parts.append(member.second_last_name.upper())
    return " ".join(parts)


def format_phone(phone: str) -> str:
    return re.sub(r"^(\d{3})(\d{3})(\d{4})$", r"\1-\2-\3", phone)


def validation_url(public_app_url: str, member_id: str) -> str:
    return f"{public_app_url.rstrip('/')}/validate/{member_id}"


def build_card(
    member: Member,
    settings: AppSettings,
    *,
    api_prefix: str,
    public_app_url: str,
    today: Optional[date] = None,
) -> CardData:
    base = f"{api_prefix}/users/{member.id}"
    return CardData(
        id=member.id,
        display_name=format_member_name(member),
        dob=format_date(member.dob),
        age=calculate_age(member.dob, today=today),
        vigencia=format_date(member.vigencia),
        vigencia_long=format_date_long(member.vigencia),
        valid=is_vigencia_valid(member.vigencia, today=today),
        phone=format_phone(member.phone_mx),
        folio=member.folio or DEFAULT_FOLIO,
        license_number=member.license_number,
        badge_number=member.badge_number,
        photo_url=f"{base}/photo" if member.photo_path else None,
        signature_url=f"{base}/signature" if member.signature_path else None,
        president_signature_url=(
            f"{api_prefix}/settings/president-signature" if settings.president_signature_path else None
        ),
        validation_url=validation_url(public_app_url, member.id),
        adjuster_colima=settings.adjuster_colima,
        adjuster_tecoman=settings.adjuster_tecoman,
        adjuster_manzanillo=settings.adjuster_manzanillo,
    )
