"""
Process-wide registry of named DAO instances.

Build each DAO once at startup, then look it up by name:

    build_dao({"name": "main", "dsn": "postgresql://..."})
    ...
    dao = get_dao("main")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tabledao.core.errors import ConfigError
from tabledao.core.settings import DAO_INSTANCE_DEF, DaoSettings

from .repository import Dao

_daos: dict[str, Dao] = {}


def build_dao(config: DaoSettings | Mapping[str, Any], **kwargs: Any) -> Dao:
    """
    Create a DAO from config and register it under `config["name"]`.

    Call `await dao.start()` (or use `async with dao:`) to open its pool.
    """
    dao = Dao(DaoSettings.from_config(config), **kwargs)
    _daos[dao.name] = dao
    return dao


def get_dao(name: str = DAO_INSTANCE_DEF) -> Dao:
    try:
        return _daos[name]
    except KeyError as e:
        raise ConfigError(f'No DAO named "{name}" has been built.') from e


def registered() -> dict[str, Dao]:
    return dict(_daos)


async def close_all() -> None:
    """
    Close and unregister every DAO.
    """
    while _daos:
        _, dao = _daos.popitem()
        await dao.close()
