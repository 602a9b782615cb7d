"""
In-memory stand-ins for the asyncpg pool, connections and transactions.

They record every statement so tests can assert on the rendered SQL and
parameters without a running database.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from typing import Any

import pytest

from tabledao.dao.repository import Dao
from tabledao.models.schema import define_model

_pids = itertools.count(1000)


class FakeTransaction:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection

    async def start(self) -> None:
        self.connection.events.append("start")

    async def commit(self) -> None:
        self.connection.events.append("commit")

    async def rollback(self) -> None:
        self.connection.events.append("rollback")


class FakeConnection:
    def __init__(self, *, fail_probe: BaseException | None = None) -> None:
        self.pid = next(_pids)
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []
        self.events: list[str] = []
        self.fetch_results: deque[list[dict[str, Any]]] = deque()
        self.value: Any = None
        self.status = "UPDATE 1"
        self.fail_probe = fail_probe
        # Keepalive queries wait on this event when set.
        self.ping_gate: asyncio.Event | None = None
        self.probes = 0
        self.terminated = False

    def get_server_pid(self) -> int:
        return self.pid

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    def terminate(self) -> None:
        self.terminated = True

    def is_closed(self) -> bool:
        return self.terminated

    async def fetch(self, sql: str, *args: Any, timeout: float | None = None) -> list[dict[str, Any]]:
        self.calls.append(("fetch", sql, args))
        return self.fetch_results.popleft() if self.fetch_results else []

    async def fetchrow(self, sql: str, *args: Any, timeout: float | None = None) -> dict[str, Any] | None:
        self.calls.append(("fetchrow", sql, args))
        rows = self.fetch_results.popleft() if self.fetch_results else []
        return rows[0] if rows else None

    async def fetchval(self, sql: str, *args: Any, column: int = 0, timeout: float | None = None) -> Any:
        self.calls.append(("fetchval", sql, args))
        if args == () and sql.startswith("SELECT 1"):
            self.probes += 1
            if self.ping_gate is not None:
                await self.ping_gate.wait()
            if self.fail_probe is not None:
                raise self.fail_probe
        return self.value

    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> str:
        self.calls.append(("execute", sql, args))
        return self.status


class _Acquire:
    def __init__(self, pool: FakePool) -> None:
        self.pool = pool
        self.connection: FakeConnection | None = None

    def __await__(self):
        return self.pool._take().__await__()

    async def __aenter__(self) -> FakeConnection:
        self.connection = await self.pool._take()
        return self.connection

    async def __aexit__(self, *exc_info: Any) -> None:
        assert self.connection is not None
        await self.pool.release(self.connection)


class FakePool:
    """
    Pool whose direct statements run on `direct`; transactions and the
    keepalive sweep acquire connections from `idle`.
    """

    def __init__(self, idle: list[FakeConnection] | None = None) -> None:
        self.direct = FakeConnection()
        self.idle: list[FakeConnection] = list(idle or [])
        self.checked_out: list[FakeConnection] = []
        self.created: list[FakeConnection] = list(self.idle)
        self.closed = False

    async def _take(self) -> FakeConnection:
        if self.idle:
            conn = self.idle.pop()
        else:
            conn = FakeConnection()
            self.created.append(conn)
        self.checked_out.append(conn)
        return conn

    def acquire(self, *, timeout: float | None = None) -> _Acquire:
        return _Acquire(self)

    async def release(self, conn: FakeConnection) -> None:
        self.checked_out.remove(conn)
        self.idle.append(conn)

    def get_idle_size(self) -> int:
        return len(self.idle)

    async def close(self) -> None:
        self.closed = True

    async def fetch(self, sql: str, *args: Any, timeout: float | None = None) -> list[dict[str, Any]]:
        return await self.direct.fetch(sql, *args)

    async def fetchrow(self, sql: str, *args: Any, timeout: float | None = None) -> dict[str, Any] | None:
        return await self.direct.fetchrow(sql, *args)

    async def fetchval(self, sql: str, *args: Any, column: int = 0, timeout: float | None = None) -> Any:
        return await self.direct.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> str:
        return await self.direct.execute(sql, *args)


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def dao(pool: FakePool) -> Dao:
    return Dao({"name": "test", "keepalive_interval": 0}, pool=pool)


@pytest.fixture
def user_schema():
    return define_model(
        "users",
        {
            "email": {"type": "varchar", "validation": ["notEmpty", "email"]},
            "name": {"type": "varchar"},
            "status": {"type": "varchar"},
            "age": {"type": "integer"},
        },
    )


@pytest.fixture
def membership_schema():
    return define_model(
        "memberships",
        {
            "user_id": {"primary_key": True},
            "group_id": {"primary_key": True},
            "role": {},
        },
        include_id_column=False,
    )
