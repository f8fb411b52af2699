# src/credenciales/crud/settings.py

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core.dates import utcnow
from credenciales.models.settings import SETTINGS_ID, AppSettings
from credenciales.schemas.settings import SettingsUpdate

logger = logging.getLogger(__name__)


async def get_or_create_settings(db: AsyncSession) -> AppSettings:
    settings = await db.get(AppSettings, SETTINGS_ID)
    if settings is not None:
        return settings

    db.add(AppSettings(id=SETTINGS_ID))
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the singleton first; use its row.
        await db.rollback()
        logger.info("Settings row already created concurrently, reloading")
    settings = await db.get(AppSettings, SETTINGS_ID)
    if settings is None:
        raise RuntimeError("Settings row missing after creation")
    return settings


async def update_settings(db: AsyncSession, data: SettingsUpdate) -> AppSettings:
    settings = await get_or_create_settings(db)
    for name, value in data.model_dump().items():
        setattr(settings, name, value)
    settings.updated_at = utcnow()
    await db.commit()
    await db.refresh(settings)
    return settings


async def set_president_signature(db: AsyncSession, relative_path: str) -> AppSettings:
    settings = await get_or_create_settings(db)
    settings.president_signature_path = relative_path
    settings.updated_at = utcnow()
    await db.commit()
    await db.refresh(settings)
    return settings
