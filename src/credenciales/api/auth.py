# src/credenciales/api/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core.db import get_session
from credenciales.crud import session as crud_session
from credenciales.deps.auth import get_current_admin, rate_limit, session_token
from credenciales.models.admin import Admin
from credenciales.schemas.admin import AdminEnvelope, AdminRead, LoginRequest, LoginResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("login", "LOGIN_RATE_LIMIT", "LOGIN_RATE_WINDOW"))],
)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
):
    settings = request.app.state.settings
    ttl = timedelta(days=settings.SESSION_TTL_DAYS)
    admin, record = await crud_session.login(db, body.email, body.password, ttl=ttl)

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=record.token,
        max_age=int(ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return LoginResponse(admin=AdminRead.model_validate(admin))


# Logout Endpoint
@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
):
    settings = request.app.state.settings
    await crud_session.logout(db, session_token(request))
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return {"message": "Logout successful"}


@router.get("/me", response_model=AdminEnvelope)
async def me(admin: Admin = Depends(get_current_admin)):
    return AdminEnvelope(admin=AdminRead.model_validate(admin))
