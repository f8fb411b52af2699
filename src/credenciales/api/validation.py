# src/credenciales/api/validation.py
"""Public QR-scan endpoint. No session required, and no PII beyond name and vigencia."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core.dates import is_vigencia_valid
from credenciales.core.db import get_session
from credenciales.crud.member import get_member
from credenciales.deps.auth import rate_limit
from credenciales.schemas.member import PublicMember, ValidationResult

router = APIRouter(prefix="/users", tags=["validation"])


@router.get(
    "/{member_id}/validate",
    response_model=ValidationResult,
    dependencies=[Depends(rate_limit("validate", "VALIDATE_RATE_LIMIT", "VALIDATE_RATE_WINDOW"))],
)
async def validate_credential(member_id: str, db: AsyncSession = Depends(get_session)):
    member = await get_member(db, member_id)
    return ValidationResult(
        user=PublicMember.model_validate(member),
        valid=is_vigencia_valid(member.vigencia),
    )
