# src/credenciales/models/settings.py

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from credenciales.core.dates import utcnow

SETTINGS_ID = 1


class AppSettings(SQLModel, table=True):
    __tablename__ = "settings"

    id: int = Field(default=SETTINGS_ID, primary_key=True)
    adjuster_colima: str = Field(default="")
    adjuster_tecoman: str = Field(default="")
    adjuster_manzanillo: str = Field(default="")
    president_signature_path: Optional[str] = Field(default=None)
    updated_at: datetime = Field(default_factory=utcnow)
