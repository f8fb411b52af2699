# src/credenciales/crud/admin.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from credenciales.core.dates import utcnow
from credenciales.core.security import hash_password
from credenciales.models.admin import Admin


async def get_admin_by_email(db: AsyncSession, email: str) -> Admin | None:
    result = await db.execute(select(Admin).where(Admin.email == email.lower()))
    return result.scalar_one_or_none()


async def create_admin(db: AsyncSession, email: str, password: str) -> Admin:
    admin = Admin(
        email=email.lower(),
        hashed_password=hash_password(password),
        created_at=utcnow(),
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin
