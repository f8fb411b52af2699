# src/credenciales/deps/auth.py
import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core import errors
from credenciales.core.db import get_session
from credenciales.core.rate_limit import client_ip
from credenciales.crud.session import validate_session
from credenciales.models.admin import Admin

logger = logging.getLogger(__name__)


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.SESSION_COOKIE_NAME)


async def get_current_admin(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> Admin:
    """Gate for every admin route: a live session or a 401, nothing else."""
    try:
        return await validate_session(db, session_token(request))
    except errors.Unauthenticated:
        raise
    except Exception:
        logger.exception("Session validation failed unexpectedly")
        raise errors.Unauthenticated()


def rate_limit(scope: str, limit_setting: str, window_setting: str):
    """Fixed-window limit per scope and client IP, limits read from settings."""

    async def dependency(request: Request) -> None:
        settings = request.app.state.settings
        limiter = request.app.state.rate_limiter
        ip = client_ip(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
        )
        allowed = await limiter.hit(
            f"{scope}:{ip}",
            getattr(settings, limit_setting),
            getattr(settings, window_setting),
        )
        if not allowed:
            logger.warning("Rate limit exceeded for %s from %s", scope, ip)
            raise errors.RateLimited()

    return dependency
