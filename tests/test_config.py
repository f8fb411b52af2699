"""
Tests for settings assembly and Vault secret loading
"""

import pytest

from credenciales.core.config import Settings


def _settings(**values) -> Settings:
    values.setdefault("_env_file", None)
    values.setdefault("FIRST_SUPERUSER_PASSWORD", "s3cret-admin")
    return Settings(**values)


class TestDatabaseUri:
    """Test database URI assembly"""

    def test_explicit_uri_wins(self):
        settings = _settings(ASYNC_DATABASE_URI="sqlite+aiosqlite://", DATABASE_HOST="db")
        assert settings.SQLALCHEMY_DATABASE_URI == "sqlite+aiosqlite://"

    def test_built_from_parts(self):
        settings = _settings(
            DATABASE_USER="ctm",
            DATABASE_PASSWORD="pw",
            DATABASE_HOST="db.internal",
            DATABASE_PORT=5433,
            DATABASE_NAME="credenciales",
        )
        assert settings.SQLALCHEMY_DATABASE_URI == (
            "postgresql+asyncpg://ctm:pw@db.internal:5433/credenciales"
        )

    def test_pool_size_is_split_across_workers(self):
        assert _settings(DB_POOL_SIZE=10, WEB_CONCURRENCY=4).POOL_SIZE == 2
        assert _settings(DB_POOL_SIZE=20, WEB_CONCURRENCY=2).POOL_SIZE == 10


class TestDerivedSettings:
    """Test values computed from other settings"""

    def test_cors_origins_are_split(self):
        settings = _settings(BACKEND_CORS_ORIGINS="https://a.mx/, https://b.mx,,")
        assert settings.all_cors_origins == ["https://a.mx", "https://b.mx"]

    def test_redis_url(self):
        assert _settings(REDIS_URL=None, REDIS_HOST=None).redis_url is None
        assert _settings(REDIS_HOST="cache", REDIS_PORT=6380).redis_url == "redis://cache:6380"
        assert _settings(REDIS_URL="redis://x:1/2", REDIS_HOST="cache").redis_url == "redis://x:1/2"

    def test_secure_cookies_only_in_production(self):
        assert _settings(MODE="development").secure_cookies is False
        assert _settings(
            MODE="production", ASYNC_DATABASE_URI="sqlite+aiosqlite://"
        ).secure_cookies is True


class TestRequiredSecrets:
    """Test production guards"""

    @pytest.mark.parametrize("password", [None, "", "changethis"])
    def test_production_rejects_weak_admin_password(self, password):
        with pytest.raises(ValueError):
            _settings(
                MODE="production",
                ASYNC_DATABASE_URI="sqlite+aiosqlite://",
                FIRST_SUPERUSER_PASSWORD=password,
            )

    def test_production_requires_database_password_without_uri(self):
        with pytest.raises(ValueError):
            _settings(MODE="production", DATABASE_HOST="db")

    def test_development_only_warns(self):
        with pytest.warns(UserWarning):
            _settings(MODE="development", FIRST_SUPERUSER_PASSWORD=None)


class TestVaultSecrets:
    """Test secret loading with the Vault read stubbed out"""

    async def test_secrets_override_settings(self, monkeypatch):
        secrets = {
            "kv/db": {"username": "vault-user", "password": "vault-pw", "host": "pg", "port": "6543",
                      "dbname": "ctm"},
            "kv/redis": {"host": "redis.internal", "password": "rpw"},
            "kv/minio": {"url": "http://minio:9000", "username": "mu", "password": "mp"},
        }
        settings = _settings(
            VAULT_URL="http://vault:8200",
            VAULT_TOKEN="token",
            VAULT_DB_MAIN_PATH="kv/db",
            VAULT_REDIS_PATH="kv/redis",
            VAULT_MINIO_PATH="kv/minio",
        )
        monkeypatch.setattr(Settings, "_read_vault_secret", lambda self, path: secrets[path])

        await settings.load_secrets_from_vault_async()

        assert settings.SQLALCHEMY_DATABASE_URI == "postgresql+asyncpg://vault-user:vault-pw@pg:6543/ctm"
        assert settings.redis_url == "redis://redis.internal:6379"
        assert settings.REDIS_PASSWORD == "rpw"
        assert settings.MINIO_URL == "http://minio:9000"
        assert settings.MINIO_BUCKET == "credenciales"

    async def test_unreadable_secret_keeps_existing_values(self, monkeypatch):
        def fail(self, path):
            raise RuntimeError("vault down")

        settings = _settings(
            VAULT_URL="http://vault:8200",
            VAULT_TOKEN="token",
            VAULT_REDIS_PATH="kv/redis",
            REDIS_HOST="fallback",
        )
        monkeypatch.setattr(Settings, "_read_vault_secret", fail)
        monkeypatch.setattr("credenciales.core.config.asyncio.sleep", _no_sleep)

        with pytest.warns(UserWarning):
            await settings.load_secrets_from_vault_async()

        assert settings.REDIS_HOST == "fallback"

    async def test_bad_port_and_blank_values_are_ignored(self, monkeypatch):
        secrets = {"kv/redis": {"host": "", "port": "not-a-port", "password": "rpw"}}
        settings = _settings(REDIS_HOST="cache", REDIS_PORT=6380, VAULT_REDIS_PATH="kv/redis")
        monkeypatch.setattr(Settings, "_read_vault_secret", lambda self, path: secrets[path])

        await settings.load_secrets_from_vault_async()

        assert settings.redis_url == "redis://cache:6380"
        assert settings.REDIS_PASSWORD == "rpw"

    async def test_read_is_retried_before_giving_up(self, monkeypatch):
        attempts = []

        def flaky(self, path):
            attempts.append(path)
            if len(attempts) < 3:
                raise RuntimeError("vault sealed")
            return {"bucket": "fotos"}

        settings = _settings(VAULT_MINIO_PATH="kv/minio")
        monkeypatch.setattr(Settings, "_read_vault_secret", flaky)
        monkeypatch.setattr("credenciales.core.config.asyncio.sleep", _no_sleep)

        await settings.load_secrets_from_vault_async()

        assert len(attempts) == 3
        assert settings.MINIO_BUCKET == "fotos"

    async def test_nothing_configured_reads_nothing(self, monkeypatch):
        def unexpected(self, path):
            raise AssertionError("Vault should not be read")

        monkeypatch.setattr(Settings, "_read_vault_secret", unexpected)
        await _settings().load_secrets_from_vault_async()


async def _no_sleep(delay):
    return None
