"""
Async database access helpers (raw SQL) using asyncpg.

Every helper takes an "executor": either the asyncpg pool (auto-commit,
one pooled connection per statement) or a connection that is inside a
transaction. Both expose the same fetch/execute API.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import os
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .errors import ConfigError
from .settings import DaoSettings


class Executor(Protocol):
    async def fetch(self, query: str, *args: Any, timeout: float | None = None) -> list[Any]: ...

    async def fetchrow(self, query: str, *args: Any, timeout: float | None = None) -> Any: ...

    async def fetchval(self, query: str, *args: Any, column: int = 0, timeout: float | None = None) -> Any: ...

    async def execute(self, query: str, *args: Any, timeout: float | None = None) -> str: ...


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url(dsn: str | None = None) -> str:
    url = (dsn or os.environ.get("DATABASE_URL", "")).strip()
    if not url:
        raise ConfigError("No DSN configured and DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def create_pool(settings: DaoSettings) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn=database_url(settings.dsn),
        min_size=settings.min_size,
        max_size=settings.max_size,
        command_timeout=settings.command_timeout,
    )


def connection_id(executor: Any) -> str:
    """
    Identity used in log lines: the backend pid for a connection, "pool" otherwise.
    """
    get_pid = getattr(executor, "get_server_pid", None)
    if get_pid is None:
        return "pool"
    try:
        return str(get_pid())
    except asyncpg.InterfaceError:
        return "closed"


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def affected_rows(status: str | None) -> int:
    """
    Parse the row count out of a command status ("UPDATE 3", "INSERT 0 1").
    """
    if not status:
        return 0
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


async def fetch_one(executor: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await executor.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(executor: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await executor.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def fetch_value(executor: Executor, sql: str, *args: Any) -> Any:
    """
    Run a query and return the first column of the first row.
    """
    return await executor.fetchval(sql, *args)


async def execute(executor: Executor, sql: str, *args: Any) -> str:
    """
    Run a statement (UPDATE/DELETE/DDL) and return its command status.
    """
    return await executor.execute(sql, *args)
