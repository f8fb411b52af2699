# src/credenciales/core/config.py
import os
import warnings
import asyncio
import logging
import functools
from typing import Any, Optional, Callable, Coroutine

import hvac
from pydantic import PostgresDsn, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Vault path setting -> {secret key: settings field}
VAULT_SECRET_FIELDS: dict[str, dict[str, str]] = {
    "VAULT_DB_MAIN_PATH": {
        "username": "DATABASE_USER",
        "password": "DATABASE_PASSWORD",
        "host": "DATABASE_HOST",
        "port": "DATABASE_PORT",
        "dbname": "DATABASE_NAME",
    },
    "VAULT_REDIS_PATH": {
        "host": "REDIS_HOST",
        "port": "REDIS_PORT",
        "password": "REDIS_PASSWORD",
    },
    "VAULT_MINIO_PATH": {
        "url": "MINIO_URL",
        "username": "MINIO_ROOT_USER",
        "password": "MINIO_ROOT_PASSWORD",
        "bucket": "MINIO_BUCKET",
    },
}


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    allowed_exceptions: tuple = (Exception,),
):
    """Retry an async callable with capped exponential backoff, re-raising the last error."""
    def decorator(func: Callable[..., Coroutine[Any, Any, Any]]):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except allowed_exceptions:
                    if attempt == max_attempts:
                        logger.exception("%s failed after %d attempts", func.__qualname__, attempt)
                        raise
                    await asyncio.sleep(min(max_delay, base_delay * 2 ** (attempt - 1)))
        return wrapper
    return decorator


class Settings(BaseSettings):
    # ---------------- General ----------------
    MODE: str = "development"
    PROJECT_NAME: str = "CTM Credenciales"
    API_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    PUBLIC_APP_URL: str = "http://localhost:3000"

    # ---------------- Main DB ----------------
    DATABASE_USER: Optional[str] = None
    DATABASE_PASSWORD: Optional[str] = None
    DATABASE_HOST: Optional[str] = None
    DATABASE_PORT: int = 5432
    DATABASE_NAME: Optional[str] = None
    ASYNC_DATABASE_URI: Optional[str] = None

    # ---------------- Redis ----------------
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_URL: Optional[str] = None

    # ---------------- Object Storage ----------------
    MINIO_ROOT_USER: Optional[str] = None
    MINIO_ROOT_PASSWORD: Optional[str] = None
    MINIO_URL: Optional[str] = None
    MINIO_BUCKET: str = "credenciales"
    STORAGE_ROOT: str = "storage"
    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024

    # ---------------- Vault ----------------
    VAULT_URL: Optional[str] = None
    VAULT_TOKEN: Optional[str] = None
    VAULT_DB_MAIN_PATH: Optional[str] = None
    VAULT_REDIS_PATH: Optional[str] = None
    VAULT_MINIO_PATH: Optional[str] = None

    # ---------------- Sessions ----------------
    SESSION_COOKIE_NAME: str = "session"
    SESSION_TTL_DAYS: int = 7

    # ---------------- Rate limits ----------------
    LOGIN_RATE_LIMIT: int = 10
    LOGIN_RATE_WINDOW: int = 60
    VALIDATE_RATE_LIMIT: int = 120
    VALIDATE_RATE_WINDOW: int = 60
    RATE_LIMIT_SWEEP_SECONDS: int = 60

    # ---------------- Superuser ----------------
    FIRST_SUPERUSER_EMAIL: Optional[str] = None
    FIRST_SUPERUSER_PASSWORD: Optional[str] = None

    # ---------------- Performance ----------------
    DB_POOL_SIZE: int = 10
    WEB_CONCURRENCY: int = 2

    # ---------------- CORS ----------------
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # ---------------- Computed ----------------
    @computed_field
    @property
    def POOL_SIZE(self) -> int:
        return max(self.DB_POOL_SIZE // max(1, self.WEB_CONCURRENCY), 2)

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        # Assembled on access so secrets loaded from Vault after startup apply.
        if self.ASYNC_DATABASE_URI:
            return self.ASYNC_DATABASE_URI
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.DATABASE_USER or "",
            password=self.DATABASE_PASSWORD or "",
            host=self.DATABASE_HOST or "localhost",
            port=self.DATABASE_PORT,
            path=(self.DATABASE_NAME or "").lstrip("/"),
        ))

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [
            origin.strip().rstrip("/")
            for origin in self.BACKEND_CORS_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def secure_cookies(self) -> bool:
        return self.MODE == "production"

    @property
    def redis_url(self) -> Optional[str]:
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_HOST:
            return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"
        return None

    # ---------------- Vault secrets ----------------
    def vault_client(self) -> hvac.Client:
        if not self.VAULT_URL or not self.VAULT_TOKEN:
            raise RuntimeError("VAULT_URL and VAULT_TOKEN are required to read secrets")
        client = hvac.Client(url=self.VAULT_URL, token=self.VAULT_TOKEN)
        if not client.is_authenticated():
            raise RuntimeError("Vault rejected the configured token")
        return client

    def _read_vault_secret(self, path: str) -> dict:
        response = self.vault_client().secrets.kv.v2.read_secret_version(path=path)
        return (response.get("data") or {}).get("data") or {}

    @async_retry(max_attempts=4, base_delay=0.5, max_delay=3.0)
    async def _read_vault_secret_async(self, path: str) -> dict:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_vault_secret, path)

    async def fetch_vault_secret_async(self, path: str) -> dict:
        """Secret data at ``path``, or an empty dict once retries are exhausted."""
        try:
            return await self._read_vault_secret_async(path)
        except Exception as e:
            warnings.warn(f"Vault secret {path} unavailable: {e}")
            logger.warning("Keeping environment values for Vault path %s", path)
            return {}

    def _apply_vault_secret(self, secret: dict, fields: dict[str, str]) -> None:
        for key, field_name in fields.items():
            value = secret.get(key)
            if not value:
                continue
            if field_name.endswith("_PORT"):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid %s from Vault: %r", field_name, value)
                    continue
            setattr(self, field_name, value)

    async def load_secrets_from_vault_async(self) -> None:
        paths = {
            path_setting: getattr(self, path_setting)
            for path_setting in VAULT_SECRET_FIELDS
            if getattr(self, path_setting)
        }
        if not paths:
            return
        secrets = await asyncio.gather(*(self.fetch_vault_secret_async(p) for p in paths.values()))
        for path_setting, secret in zip(paths, secrets):
            self._apply_vault_secret(secret, VAULT_SECRET_FIELDS[path_setting])

    # ---------------- Validation ----------------
    @model_validator(mode="after")
    def check_required_secrets(self) -> "Settings":
        required = {
            "FIRST_SUPERUSER_PASSWORD": self.FIRST_SUPERUSER_PASSWORD,
        }
        if not self.ASYNC_DATABASE_URI:
            required["DATABASE_PASSWORD"] = self.DATABASE_PASSWORD
        for name, value in required.items():
            if self.MODE == "production" and (value is None or value == "" or value == "changethis"):
                raise ValueError(f"{name} is not set or insecure. Update in production!")
            if value is None and self.MODE == "development":
                warnings.warn(f"{name} is not set. Using insecure defaults in development.")
        return self

    # ---------------- Model Config ----------------
    model_config = SettingsConfigDict(
        env_file=os.path.expanduser(".env"),
        case_sensitive=True,
        extra="ignore",
    )


def get_settings() -> Settings:
    return Settings()
