# src/credenciales/schemas/settings.py

from datetime import datetime
from typing import Optional

from pydantic import Field

from credenciales.schemas.base import CamelModel


class SettingsUpdate(CamelModel):
    adjuster_colima: str = Field(min_length=1)
    adjuster_tecoman: str = Field(min_length=1)
    adjuster_manzanillo: str = Field(min_length=1)


class SettingsRead(CamelModel):
    adjuster_colima: str
    adjuster_tecoman: str
    adjuster_manzanillo: str
    president_signature_path: Optional[str] = None
    updated_at: datetime


class SettingsEnvelope(CamelModel):
    settings: SettingsRead
    message: Optional[str] = None
