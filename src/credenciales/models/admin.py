# src/credenciales/models/admin.py

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from credenciales.core.dates import utcnow


class Admin(SQLModel, table=True):
    __tablename__ = "admin"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, unique=True, index=True)
    hashed_password: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)


class AdminSession(SQLModel, table=True):
    """A login. Valid while ``expires_at`` lies in the future."""

    __tablename__ = "admin_session"

    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(nullable=False, unique=True, index=True)
    admin_id: int = Field(foreign_key="admin.id", nullable=False, index=True)
    expires_at: datetime = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)
