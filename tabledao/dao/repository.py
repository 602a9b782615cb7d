"""
DAO operations: insert / update / delete / select / aggregates.

Every operation resolves its target rows through a selector (see
`tabledao.query.selector`), renders one statement and runs it either on
the pool (auto-commit) or on the connection of the transaction it was
given. Validation and argument errors are raised before any SQL is sent;
store errors propagate unchanged.

    dao = Dao(DaoSettings(name="main", dsn="postgresql://..."))
    await dao.start()

    user = User({"email": "ada@example.com"})
    await dao.insert(user)                # back-fills user["id"]
    user["email"] = "ada@lovelace.dev"
    await dao.update(user)                # by primary key
    await dao.select(User, {"email": "ada@lovelace.dev"}, {"pn": 1, "pc": 20})
    await dao.count(User, [("creationTime", ">", since)])

    async def move(tx):
        await dao.update(src, tx)
        await dao.update(dst, tx)

    await dao.transaction(move)
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import asyncpg

from tabledao.core import db
from tabledao.core.errors import AmbiguitySelectorError, ConfigError, DaoError, ValidationError
from tabledao.core.keepalive import KeepaliveSweeper
from tabledao.core.settings import DaoSettings
from tabledao.models.schema import (
    ACTION_COLUMN,
    ACTION_TIME_COLUMN,
    CREATION_TIME_COLUMN,
    Action,
    Entity,
    Schema,
)
from tabledao.models.validation import EMPTY_PARAMETERS_MESSAGE
from tabledao.query.builder import ScopedQuery
from tabledao.query.conditions import QUERY_PAGE_COUNT, QUERY_PAGE_NUMBER, append_limit
from tabledao.query.selector import FilterMap, Identifier, as_selector, normalize

from .transaction import Transaction, TransactionCoordinator, is_transaction

T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


def stamp_audit(attrs: dict[str, Any], action: Action, now: int | None = None) -> None:
    now = _now_ms() if now is None else now
    attrs[ACTION_COLUMN] = int(action)
    if action is Action.INSERT:
        attrs[CREATION_TIME_COLUMN] = now
    attrs[ACTION_TIME_COLUMN] = now


def resolve_aggregate_args(
    args: Sequence[Any],
    selector: Any = None,
    column: str | None = None,
    transaction: Transaction | None = None,
) -> tuple[Any, str, Transaction | None]:
    """
    Sort the positional arguments of an aggregate call into
    (selector, column, transaction).

    - (x,):      a str is the column, a transaction is the transaction,
                 anything else is the selector
    - (x, tx):   same for x when the second value is a transaction
    - (x, y):    selector and column
    - (x, y, z): selector, column and transaction

    A string primary-key lookup must therefore be passed as
    `Identifier("42")` or `selector="42"`.
    """
    if len(args) > 3:
        raise TypeError(f"Aggregates take at most 3 positional arguments after the schema ({len(args)} given).")

    if len(args) == 3:
        selector, column, transaction = args
    elif len(args) == 2:
        first, second = args
        if is_transaction(second):
            transaction = second
            if isinstance(first, str):
                column = first
            else:
                selector = first
        else:
            selector, column = first, second
    elif len(args) == 1:
        (first,) = args
        if isinstance(first, str):
            column = first
        elif is_transaction(first):
            transaction = first
        else:
            selector = first

    return selector, column or "*", transaction


class Dao:
    """
    Data-access instance bound to one asyncpg pool.
    """

    def __init__(
        self,
        settings: DaoSettings | Mapping[str, Any],
        *,
        pool: asyncpg.Pool | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = DaoSettings.from_config(settings)
        self.name = self.settings.name
        self.log = logger or self.settings.logger or logging.getLogger(__name__)
        self._pool = pool
        self._owns_pool = pool is None
        self._sql_level = logging.INFO if self.settings.debug else logging.DEBUG
        self.coordinator = TransactionCoordinator(lambda: self.pool, log=self.log)
        self.keepalive: KeepaliveSweeper | None = None

    def __repr__(self) -> str:
        return f"Dao(name={self.name!r})"

    # -- lifecycle -------------------------------------------------------

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DaoError(f'DAO "{self.name}" is not started. Call start() on startup.')
        return self._pool

    async def start(self) -> Dao:
        if self._pool is None:
            self._pool = await db.create_pool(self.settings)
            self._owns_pool = True
        if self.settings.keepalive_interval > 0 and self.keepalive is None:
            self.keepalive = KeepaliveSweeper(self._pool, interval=self.settings.keepalive_interval)
            self.keepalive.start()
        return self

    async def close(self) -> None:
        if self.keepalive is not None:
            await self.keepalive.stop()
            self.keepalive = None
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> Dao:
        return await self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -- plumbing --------------------------------------------------------

    def table(self, table_name: str) -> ScopedQuery:
        return ScopedQuery(table_name)

    def _executor(self, transaction: Any) -> Any:
        if transaction is None:
            return self.pool
        if not is_transaction(transaction):
            raise ConfigError(f"Expected a transaction, got {type(transaction).__name__}.")
        return transaction.executor()

    def _log_sql(self, executor: Any, sql: str) -> None:
        self.log.log(self._sql_level, "sql cid=%s %s", db.connection_id(executor), sql)

    def _scoped(self, schema: Schema, selector: Any, transaction: Any) -> ScopedQuery:
        query = normalize(schema, selector, transaction)
        if not isinstance(query, ScopedQuery):
            raise ConfigError(f"Unsupported selector: {selector!r}")
        return query

    async def fetch_all(self, sql: str, *args: Any, transaction: Transaction | None = None) -> list[dict[str, Any]]:
        executor = self._executor(transaction)
        self._log_sql(executor, sql)
        return await db.fetch_all(executor, sql, *args)

    async def fetch_one(self, sql: str, *args: Any, transaction: Transaction | None = None) -> dict[str, Any] | None:
        executor = self._executor(transaction)
        self._log_sql(executor, sql)
        return await db.fetch_one(executor, sql, *args)

    async def fetch_value(self, sql: str, *args: Any, transaction: Transaction | None = None) -> Any:
        executor = self._executor(transaction)
        self._log_sql(executor, sql)
        return await db.fetch_value(executor, sql, *args)

    async def execute(self, sql: str, *args: Any, transaction: Transaction | None = None) -> str:
        executor = self._executor(transaction)
        self._log_sql(executor, sql)
        return await db.execute(executor, sql, *args)

    # -- writes ----------------------------------------------------------

    async def insert(
        self,
        entities: Entity | Sequence[Entity],
        transaction: Transaction | None = None,
    ) -> Any:
        """
        Insert one entity or a batch of entities of the same schema.

        Returns the generated key (one row) or the list of generated keys.
        A single inserted row gets its generated key written back into its attrs.
        """
        items = list(entities) if isinstance(entities, (list, tuple)) else [entities]
        if not items:
            raise ValidationError([EMPTY_PARAMETERS_MESSAGE])
        schema = items[0].schema
        for item in items:
            if item.schema is not schema:
                raise ConfigError("A batch insert must contain entities of a single schema.")
            if not item.attrs:
                raise ValidationError([EMPTY_PARAMETERS_MESSAGE])

        rows = [dict(item.attrs) for item in items]
        if schema.has_audit_columns:
            now = _now_ms()
            for row in rows:
                stamp_audit(row, Action.INSERT, now)

        returning = schema.single_primary_key
        sql, params = ScopedQuery(schema.table_name).to_insert(rows, returning=returning)
        # Entities are stamped only once the statement rendered.
        for item, row in zip(items, rows):
            item.attrs.update(row)
        if returning is None:
            await self.execute(sql, *params, transaction=transaction)
            return None

        returned = await self.fetch_all(sql, *params, transaction=transaction)
        keys = [row[returning] for row in returned]
        if len(keys) == 1 and len(items) == 1:
            items[0].attrs[returning] = keys[0]
            return keys[0]
        return keys

    async def update(self, entity: Entity, *args: Any, transaction: Transaction | None = None) -> int:
        """
        update(entity[, tx])            by the entity's primary key
        update(entity, selector[, tx])  rows matched by selector

        Passing a selector for an entity that already carries a valid primary
        key is ambiguous and raises AmbiguitySelectorError.
        Returns the number of updated rows.
        """
        if len(args) > 2:
            raise TypeError(f"update() takes at most 2 arguments after the entity ({len(args)} given).")
        selector = None
        if len(args) == 1 and is_transaction(args[0]):
            transaction = args[0]
        elif args:
            selector = args[0]
            if len(args) == 2:
                transaction = args[1]

        schema = entity.schema
        attrs = entity.attrs
        if not attrs:
            raise ValidationError([EMPTY_PARAMETERS_MESSAGE])

        if selector is None:
            key = schema.validate_primary_key(attrs)
            selector = FilterMap(key)
            key_columns = set(schema.primary_key)
        else:
            if schema.has_valid_primary_key(attrs):
                raise AmbiguitySelectorError(
                    "The entity carries a valid primary key; update it by key "
                    "or pass a selector without the key, not both."
                )
            # An unset key column is not an assignment.
            key_columns = {name for name in schema.primary_key if attrs.get(name) is None}

        query = self._scoped(schema, selector, transaction)
        values = {name: value for name, value in attrs.items() if name not in key_columns}
        if schema.has_audit_columns:
            stamp_audit(values, Action.UPDATE)
        sql, params = query.to_update(values)
        if schema.has_audit_columns:
            attrs[ACTION_COLUMN] = values[ACTION_COLUMN]
            attrs[ACTION_TIME_COLUMN] = values[ACTION_TIME_COLUMN]
        return db.affected_rows(await self.execute(sql, *params, transaction=query.transaction))

    async def delete(self, target: Entity | Schema, *args: Any, transaction: Transaction | None = None) -> int:
        """
        delete(entity[, tx])              by the entity's primary key
        delete(schema[, selector][, tx])  rows matched by selector (all rows without one)

        Returns the number of deleted rows.
        """
        if len(args) > 2:
            raise TypeError(f"delete() takes at most 2 arguments after the target ({len(args)} given).")
        if len(args) == 1 and is_transaction(args[0]):
            transaction = args[0]
            args = ()

        if isinstance(target, Entity):
            if args:
                raise TypeError("delete(entity) takes no selector; the primary key selects the row.")
            schema = target.schema
            selector: Any = FilterMap(schema.validate_primary_key(target.attrs))
        elif isinstance(target, Schema):
            schema = target
            selector = args[0] if args else None
            if len(args) == 2:
                transaction = args[1]
        else:
            raise ConfigError(f"delete() needs an entity or a schema, got {type(target).__name__}.")

        query = self._scoped(schema, selector, transaction)
        sql, params = query.to_delete()
        return db.affected_rows(await self.execute(sql, *params, transaction=query.transaction))

    del_ = delete

    # -- reads -----------------------------------------------------------

    async def _select_entities(self, schema: Schema, query: ScopedQuery) -> list[Entity]:
        sql, params = query.to_select()
        rows = await self.fetch_all(sql, *params, transaction=query.transaction)
        return [Entity(schema, row) for row in rows]

    async def select(
        self,
        schema: Schema,
        selector: Any = None,
        page_options: Mapping[str, Any] | Transaction | None = None,
        transaction: Transaction | None = None,
    ) -> list[Entity] | Entity | None:
        """
        Rows matched by `selector`, paged by `page_options` ({"pn": 1, "pc": 20}).

        A scalar selector (a primary-key lookup) returns the entity or None
        instead of a list.
        """
        if is_transaction(page_options):
            transaction, page_options = page_options, None
        if is_transaction(selector) and transaction is None:
            transaction, selector = selector, None

        selector = as_selector(selector)
        query = self._scoped(schema, selector, transaction)
        if page_options:
            query = append_limit(query, page_options.get(QUERY_PAGE_NUMBER), page_options.get(QUERY_PAGE_COUNT))

        entities = await self._select_entities(schema, query)
        if isinstance(selector, Identifier):
            return entities[0] if entities else None
        return entities

    async def select_one(
        self,
        schema: Schema,
        selector: Any = None,
        transaction: Transaction | None = None,
    ) -> Entity | None:
        if is_transaction(selector) and transaction is None:
            transaction, selector = selector, None
        query = self._scoped(schema, selector, transaction).limit(1)
        entities = await self._select_entities(schema, query)
        return entities[0] if entities else None

    async def _aggregate(
        self,
        function: str,
        schema: Schema,
        args: Sequence[Any],
        selector: Any,
        column: str | None,
        transaction: Transaction | None,
    ) -> Any:
        selector, column, transaction = resolve_aggregate_args(args, selector, column, transaction)
        query = self._scoped(schema, selector, transaction)
        sql, params = query.to_aggregate(function, column)
        return await self.fetch_value(sql, *params, transaction=query.transaction)

    async def count(
        self,
        schema: Schema,
        *args: Any,
        selector: Any = None,
        column: str | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        return await self._aggregate("count", schema, args, selector, column, transaction)

    async def min(
        self,
        schema: Schema,
        *args: Any,
        selector: Any = None,
        column: str | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        return await self._aggregate("min", schema, args, selector, column, transaction)

    async def max(
        self,
        schema: Schema,
        *args: Any,
        selector: Any = None,
        column: str | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        return await self._aggregate("max", schema, args, selector, column, transaction)

    async def sum(
        self,
        schema: Schema,
        *args: Any,
        selector: Any = None,
        column: str | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        return await self._aggregate("sum", schema, args, selector, column, transaction)

    async def avg(
        self,
        schema: Schema,
        *args: Any,
        selector: Any = None,
        column: str | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        return await self._aggregate("avg", schema, args, selector, column, transaction)

    # -- transactions ----------------------------------------------------

    async def transaction(self, task: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run `task(tx)` in a transaction: commit when it returns, roll back
        (and re-raise) when it raises.
        """
        return await self.coordinator.run(task)

    trans = transaction

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[Transaction]:
        async with self.coordinator.begin() as tx:
            yield tx
