# src/credenciales/crud/session.py
"""
Admin session lifecycle.

A session row is ACTIVE while ``expires_at > now``. Expired rows are not
swept proactively: they are removed when the owner logs in again or the
first time the token is presented after expiry.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from credenciales.core import errors
from credenciales.core.dates import utcnow
from credenciales.core.security import burn_password_check, generate_session_token, verify_password
from credenciales.crud.admin import get_admin_by_email
from credenciales.models.admin import Admin, AdminSession

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=7)


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    *,
    ttl: timedelta = SESSION_TTL,
    now: Optional[datetime] = None,
) -> tuple[Admin, AdminSession]:
    admin = await get_admin_by_email(db, email)
    if admin is None:
        burn_password_check(password)
        logger.info("Login failed for %s", email)
        raise errors.InvalidCredentials()
    if not verify_password(password, admin.hashed_password):
        logger.info("Login failed for %s", email)
        raise errors.InvalidCredentials()

    now = now or utcnow()
    await db.execute(
        delete(AdminSession).where(
            AdminSession.admin_id == admin.id,
            AdminSession.expires_at <= now,
        )
    )
    record = AdminSession(
        token=generate_session_token(),
        admin_id=admin.id,
        expires_at=now + ttl,
        created_at=now,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info("Admin %s logged in", admin.email)
    return admin, record


async def validate_session(
    db: AsyncSession,
    token: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Admin:
    if not token:
        raise errors.Unauthenticated()

    result = await db.execute(
        select(AdminSession, Admin)
        .join(Admin, Admin.id == AdminSession.admin_id)
        .where(AdminSession.token == token)
    )
    row = result.first()
    if row is None:
        raise errors.Unauthenticated()

    record, admin = row
    now = now or utcnow()
    if record.expires_at <= now:
        await db.execute(delete(AdminSession).where(AdminSession.id == record.id))
        await db.commit()
        logger.info("Deleted expired session %d of admin %d", record.id, record.admin_id)
        raise errors.SessionExpired()
    return admin


async def logout(db: AsyncSession, token: Optional[str]) -> None:
    if not token:
        return
    await db.execute(delete(AdminSession).where(AdminSession.token == token))
    await db.commit()
