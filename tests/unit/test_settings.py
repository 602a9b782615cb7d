"""
Unit tests for DAO settings and the named-instance registry.
"""

import pytest

from tabledao.core import db
from tabledao.core.errors import ConfigError
from tabledao.core.settings import DAO_INSTANCE_DEF, DaoSettings
from tabledao.dao import registry
from tabledao.dao.registry import build_dao, close_all, get_dao


@pytest.fixture(autouse=True)
def _clean_registry():
    yield
    registry._daos.clear()


class TestDaoSettings:
    """Tests for DaoSettings.from_config."""

    def test_name_is_required(self):
        with pytest.raises(ConfigError, match="You must specify a name for the DAO."):
            DaoSettings.from_config({})
        with pytest.raises(ConfigError, match="You must specify a name for the DAO."):
            DaoSettings.from_config({"name": "   "})

    def test_defaults(self, monkeypatch):
        for var in ("DAO_POOL_MIN_SIZE", "DAO_POOL_MAX_SIZE", "DAO_COMMAND_TIMEOUT_S", "DAO_KEEPALIVE_INTERVAL_S"):
            monkeypatch.delenv(var, raising=False)

        settings = DaoSettings.from_config({"name": "main"})

        assert (settings.min_size, settings.max_size) == (1, 5)
        assert settings.command_timeout == 30.0
        assert settings.keepalive_interval == 3600.0
        assert settings.debug is False

    def test_env_fallbacks(self, monkeypatch):
        monkeypatch.setenv("DAO_POOL_MAX_SIZE", "9")
        monkeypatch.setenv("DAO_KEEPALIVE_INTERVAL_S", "not-a-number")

        settings = DaoSettings.from_config({"name": "main"})

        assert settings.max_size == 9
        assert settings.keepalive_interval == 3600.0

    def test_invalid_values(self):
        with pytest.raises(ConfigError, match="Invalid DAO config"):
            DaoSettings.from_config({"name": "main", "max_size": 0})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            DaoSettings.from_config(["main"])

    def test_settings_pass_through(self):
        settings = DaoSettings(name="main")

        assert DaoSettings.from_config(settings) is settings


class TestDatabaseUrl:
    def test_sslmode_is_dropped(self):
        url = db.database_url("postgresql://u:p@localhost:5432/app?sslmode=require&application_name=x")

        assert url == "postgresql://u:p@localhost:5432/app?application_name=x"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/app")

        assert db.database_url() == "postgresql://localhost/app"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ConfigError):
            db.database_url()

    @pytest.mark.parametrize(
        "status,rows",
        [("UPDATE 3", 3), ("INSERT 0 1", 1), ("DELETE 0", 0), ("", 0), (None, 0), ("SELECT", 0)],
    )
    def test_affected_rows(self, status, rows):
        assert db.affected_rows(status) == rows


class TestRegistry:
    """Tests for named DAO instances."""

    def test_build_and_get(self):
        dao = build_dao({"name": "reports", "keepalive_interval": 0})

        assert get_dao("reports") is dao
        assert dao.name == "reports"

    def test_default_name(self):
        dao = build_dao({"name": DAO_INSTANCE_DEF})

        assert get_dao() is dao

    def test_unknown_name(self):
        with pytest.raises(ConfigError):
            get_dao("missing")

    def test_build_without_name(self):
        with pytest.raises(ConfigError):
            build_dao({"dsn": "postgresql://localhost/app"})

    @pytest.mark.asyncio
    async def test_close_all(self):
        build_dao({"name": "a"})
        build_dao({"name": "b"})

        await close_all()

        assert registry.registered() == {}
