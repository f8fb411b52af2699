# src/credenciales/core/initial_data.py
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core.config import Settings
from credenciales.crud import admin as crud_admin

logger = logging.getLogger(__name__)


async def init_super_admin(session: AsyncSession, settings: Settings):

    email = settings.FIRST_SUPERUSER_EMAIL
    password = settings.FIRST_SUPERUSER_PASSWORD

    if not email or not password:
        logger.warning("Superuser credentials not set in .env, skipping superuser creation")
        return None

    # check if super admin exists
    existing = await crud_admin.get_admin_by_email(session, email)
    if existing:
        logger.info("Super Admin already exists: %s", email)
        return existing

    new_admin = await crud_admin.create_admin(session, email, password)
    logger.info("Super Admin created: %s", email)
    return new_admin
