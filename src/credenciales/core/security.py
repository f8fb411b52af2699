# src/credenciales/core/security.py
import secrets
from functools import lru_cache

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_TOKEN_BYTES = 48


# Password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash(secrets.token_urlsafe(16))


def burn_password_check(password: str) -> None:
    """Spend the same hashing work as a real check when the email is unknown."""
    pwd_context.verify(password, _dummy_hash())


# Session token
def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)
