# src/credenciales/schemas/admin.py

from datetime import datetime

from pydantic import EmailStr, Field

from credenciales.schemas.base import CamelModel


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AdminRead(CamelModel):
    id: int
    email: EmailStr
    created_at: datetime


class AdminEnvelope(CamelModel):
    admin: AdminRead


class LoginResponse(AdminEnvelope):
    message: str = "Login successful"
