"""
Transaction coordination.

Every transaction gets a sequence id (1..1,000,000, wrapping back to 1) used
to correlate its log lines with the backend connection it ran on:

    transaction_begin id=17 cid=48213
    transaction_commit id=17 cid=48213

Lifecycle: STARTED -> RUNNING -> COMMITTED | ROLLED_BACK. The task that
runs inside the transaction signals completion by returning (commit) or by
raising (rollback, and the exception propagates). A finished handle refuses
any further use.
"""

from __future__ import annotations

import enum
import itertools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from tabledao.core import db
from tabledao.core.errors import TransactionClosedError

MAX_TRANSACTION_ID = 1_000_000

T = TypeVar("T")

logger = logging.getLogger(__name__)


class TransactionState(enum.Enum):
    STARTED = "started"
    RUNNING = "running"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """
    Handle passed to a transaction task; DAO operations accept it as their
    `transaction` argument.
    """

    def __init__(self, id: int, connection: Any, *, log: logging.Logger | None = None) -> None:
        self.id = id
        self.connection = connection
        self.state = TransactionState.STARTED
        self._log = log or logger
        self._tx = connection.transaction()

    def __repr__(self) -> str:
        return f"Transaction(id={self.id}, cid={self.cid}, state={self.state.value})"

    @property
    def cid(self) -> str:
        return db.connection_id(self.connection)

    @property
    def finished(self) -> bool:
        return self.state in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK)

    def _ensure_open(self) -> None:
        if self.finished:
            raise TransactionClosedError(f"Transaction {self.id} is already {self.state.value}.")

    def executor(self) -> Any:
        """
        The connection statements of this transaction run on.
        """
        self._ensure_open()
        return self.connection

    async def start(self) -> None:
        if self.state is not TransactionState.STARTED:
            raise TransactionClosedError(f"Transaction {self.id} was already started.")
        self._log.info("transaction_begin id=%s cid=%s", self.id, self.cid)
        await self._tx.start()
        self.state = TransactionState.RUNNING

    async def commit(self) -> None:
        self._ensure_open()
        try:
            await self._tx.commit()
        except BaseException:
            self.state = TransactionState.ROLLED_BACK
            self._log.error("transaction_commit_failed id=%s cid=%s", self.id, self.cid)
            raise
        self.state = TransactionState.COMMITTED
        self._log.info("transaction_commit id=%s cid=%s", self.id, self.cid)

    async def rollback(self, error: BaseException | None = None) -> None:
        self._ensure_open()
        self.state = TransactionState.ROLLED_BACK
        await self._tx.rollback()
        self._log.error("transaction_rollback id=%s cid=%s error=%r", self.id, self.cid, error)


def is_transaction(value: Any) -> bool:
    return isinstance(value, Transaction)


class TransactionCoordinator:
    """
    Opens transactions on pooled connections and drives commit/rollback.
    """

    def __init__(
        self,
        get_pool: Callable[[], Any],
        *,
        log: logging.Logger | None = None,
        max_id: int = MAX_TRANSACTION_ID,
    ) -> None:
        self._get_pool = get_pool
        self._log = log or logger
        self.max_id = max_id
        # next() on the cycle is the only mutation of the shared counter.
        self._ids = itertools.cycle(range(1, max_id + 1))

    def next_id(self) -> int:
        return next(self._ids)

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[Transaction]:
        """
        `async with coordinator.begin() as tx:` commits on normal exit and
        rolls back when the block raises.
        """
        async with self._get_pool().acquire() as connection:
            tx = Transaction(self.next_id(), connection, log=self._log)
            await tx.start()
            try:
                yield tx
            except BaseException as e:
                if not tx.finished:
                    await tx.rollback(e)
                raise
            if not tx.finished:
                await tx.commit()

    async def run(self, task: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run `task(tx)` in a new transaction and return its result.
        """
        async with self.begin() as tx:
            return await task(tx)
