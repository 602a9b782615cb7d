"""
Error types raised by the data-access layer.

Config and validation errors are raised before any SQL reaches the store.
Store failures are not wrapped: whatever asyncpg raises reaches the caller
unchanged (and rolls back the surrounding transaction, if any).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import asyncpg

# Store failures propagate as-is; this alias only names them.
StoreError = asyncpg.PostgresError

# What a broken pooled connection can raise while being probed.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


class DaoError(RuntimeError):
    pass


class ConfigError(DaoError):
    """
    Missing declaration (table name, columns, primary key, DAO name) or a
    malformed order/selector/page argument.
    """


class ValidationError(DaoError):
    """
    One or more column constraints failed.

    `messages` holds every failing rule's message, in column-declaration order.
    """

    code = 400

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class AmbiguitySelectorError(DaoError):
    """
    `update` got an entity with a valid primary key and an explicit selector.
    """


class TransactionClosedError(DaoError):
    """
    The transaction handle was used after it committed or rolled back.
    """
