"""
Idle-connection keepalive.

Servers drop connections that stay silent past their idle timeout without
telling the client; the pool would then hand a dead connection to the next
caller. Once per interval we probe every idle connection with a trivial
query and terminate the ones that fail, so the pool reconnects them lazily.

Only idle connections are touched: they are taken out of the pool with a
regular acquire, which never returns a connection checked out by a caller.
This never raises to anyone; failures are only logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from . import db
from .errors import CONNECTION_ERRORS

DEFAULT_INTERVAL_S = 60 * 60
PROBE_SQL = "SELECT 1 + 1"

logger = logging.getLogger(__name__)


class KeepaliveSweeper:
    def __init__(
        self,
        pool: Any,
        *,
        interval: float = DEFAULT_INTERVAL_S,
        probe_sql: str = PROBE_SQL,
        acquire_timeout: float = 5.0,
        probe_timeout: float = 10.0,
    ) -> None:
        self.pool = pool
        self.interval = interval
        self.probe_sql = probe_sql
        self.acquire_timeout = acquire_timeout
        self.probe_timeout = probe_timeout
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return None
        self._task = asyncio.get_running_loop().create_task(self._run(), name="tabledao-keepalive")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                evicted = await self.sweep()
                if evicted:
                    logger.info("keepalive_sweep evicted=%s", evicted)
            except Exception:
                logger.exception("keepalive_sweep_failed")

    async def sweep(self) -> int:
        """
        Probe the currently idle connections once; return how many were evicted.
        """
        idle = self.pool.get_idle_size()
        held: list[Any] = []
        # Take the idle connections first so each acquire yields a different
        # one, then check them together; each goes back as soon as its own
        # check is done.
        try:
            for _ in range(idle):
                try:
                    held.append(await self.pool.acquire(timeout=self.acquire_timeout))
                except CONNECTION_ERRORS as e:
                    logger.warning("keepalive_acquire_failed error=%s", e)
                    break
        except BaseException:
            for conn in held:
                await self.pool.release(conn)
            raise

        results = await asyncio.gather(*(self._check_and_release(conn) for conn in held))
        return results.count(False)

    async def _check_and_release(self, conn: Any) -> bool:
        try:
            return await self._probe(conn)
        finally:
            await self.pool.release(conn)

    async def _probe(self, conn: Any) -> bool:
        cid = db.connection_id(conn)
        try:
            await conn.fetchval(self.probe_sql, timeout=self.probe_timeout)
        except CONNECTION_ERRORS as e:
            logger.warning("keepalive_evicted cid=%s error=%s", cid, e)
            conn.terminate()
            return False
        return True
