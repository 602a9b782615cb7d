"""
Scoped queries: one table plus the WHERE / ORDER BY / LIMIT / OFFSET
clauses accumulated for it, rendered to asyncpg SQL.

Builder methods return a new query and never mutate the receiver, so a
query can be reused as a template or re-scoped to another table.

Only allow-listed operators and directions reach the SQL text; every value
is passed as a positional parameter ($1, $2, ...).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from tabledao.core.errors import ConfigError

OPERATORS = frozenset(
    {
        "=",
        "!=",
        "<>",
        "<",
        "<=",
        ">",
        ">=",
        "like",
        "not like",
        "ilike",
        "not ilike",
        "between",
        "not between",
        "in",
        "not in",
    }
)
# Operators whose value is a list of values.
LIST_OPERATORS = frozenset({"between", "not between", "in", "not in"})
# Operators whose value is a text pattern whatever the column type.
PATTERN_OPERATORS = frozenset({"like", "not like", "ilike", "not ilike"})
DIRECTIONS = frozenset({"asc", "desc"})
AGGREGATES = frozenset({"count", "min", "max", "sum", "avg"})


def quote_ident(name: str) -> str:
    """
    Quote a column or table name; "schema.table" quotes each part.
    """
    if not name or not isinstance(name, str):
        raise ConfigError(f"Invalid identifier: {name!r}")
    return ".".join('"' + part.replace('"', '""') + '"' for part in name.split("."))


def split_values(value: Any) -> list[Any]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    raise ConfigError(f"Expected a list of values, got {value!r}")


@dataclass(frozen=True)
class Condition:
    column: str
    operator: str = "="
    value: Any = None

    def __post_init__(self) -> None:
        operator = (self.operator or "=").strip().lower()
        if operator not in OPERATORS:
            raise ConfigError(f'Unsupported operator "{self.operator}" for column "{self.column}".')
        quote_ident(self.column)
        object.__setattr__(self, "operator", operator)

    @classmethod
    def from_entry(cls, entry: Any) -> Condition:
        """
        Accept (column,), (column, value) or (column, operator, value).
        """
        if isinstance(entry, Condition):
            return entry
        if not isinstance(entry, (list, tuple)) or not 1 <= len(entry) <= 3:
            raise ConfigError(f"A condition must be (column[, operator], value), got {entry!r}")
        if len(entry) == 1:
            return cls(entry[0])
        if len(entry) == 2:
            return cls(entry[0], "=", entry[1])
        return cls(entry[0], entry[1] or "=", entry[2])

    def render(self, params: list[Any]) -> str:
        column = quote_ident(self.column)
        if self.value is None and self.operator in ("=", "!=", "<>"):
            return f"{column} IS NULL" if self.operator == "=" else f"{column} IS NOT NULL"

        if self.operator in ("between", "not between"):
            bounds = split_values(self.value)
            if len(bounds) != 2:
                raise ConfigError(f'"{self.operator}" on "{self.column}" needs exactly two values.')
            params.extend(bounds)
            keyword = self.operator.upper()
            return f"{column} {keyword} ${len(params) - 1} AND ${len(params)}"

        if self.operator in ("in", "not in"):
            params.append(split_values(self.value))
            negate = "NOT " if self.operator == "not in" else ""
            return f"{negate}{column} = ANY(${len(params)})"

        params.append(self.value)
        return f"{column} {self.operator.upper()} ${len(params)}"


@dataclass(frozen=True)
class Order:
    column: str
    direction: str = "asc"

    def __post_init__(self) -> None:
        direction = (self.direction or "asc").strip().lower()
        if direction not in DIRECTIONS:
            raise ConfigError(f'Unsupported order direction "{self.direction}" for column "{self.column}".')
        quote_ident(self.column)
        object.__setattr__(self, "direction", direction)

    def render(self) -> str:
        return f"{quote_ident(self.column)} {self.direction.upper()}"


@dataclass(frozen=True)
class ScopedQuery:
    table: str
    conditions: tuple[Condition, ...] = ()
    orders: tuple[Order, ...] = ()
    limit_count: int | None = None
    offset_count: int | None = None
    # Connection of the transaction the query runs in, if any.
    transaction: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        quote_ident(self.table)

    # -- builder ---------------------------------------------------------

    def scoped(self, table: str) -> ScopedQuery:
        return replace(self, table=table)

    def where(self, column: str | Mapping[str, Any], *args: Any) -> ScopedQuery:
        """
        where("age", ">", 18), where("status", "active") or where({"status": "active"}).
        """
        if isinstance(column, Mapping):
            if args:
                raise ConfigError("where(mapping) takes no further arguments.")
            added = tuple(Condition(name, "=", value) for name, value in column.items())
        else:
            added = (Condition.from_entry((column, *args)),)
        return replace(self, conditions=self.conditions + added)

    def where_all(self, entries: Iterable[Any]) -> ScopedQuery:
        added = tuple(Condition.from_entry(entry) for entry in entries)
        return replace(self, conditions=self.conditions + added)

    def order_by(self, column: str, direction: str = "asc") -> ScopedQuery:
        return replace(self, orders=self.orders + (Order(column, direction),))

    def limit(self, count: int) -> ScopedQuery:
        return replace(self, limit_count=int(count))

    def offset(self, count: int) -> ScopedQuery:
        return replace(self, offset_count=int(count))

    def transacting(self, transaction: Any) -> ScopedQuery:
        return replace(self, transaction=transaction)

    # -- rendering -------------------------------------------------------

    def _where_sql(self, params: list[Any]) -> str:
        if not self.conditions:
            return ""
        return " WHERE " + " AND ".join(condition.render(params) for condition in self.conditions)

    def _tail_sql(self, params: list[Any]) -> str:
        sql = ""
        if self.orders:
            sql += " ORDER BY " + ", ".join(order.render() for order in self.orders)
        if self.limit_count is not None:
            params.append(self.limit_count)
            sql += f" LIMIT ${len(params)}"
        if self.offset_count is not None:
            params.append(self.offset_count)
            sql += f" OFFSET ${len(params)}"
        return sql

    def to_select(self, columns: Sequence[str] | None = None) -> tuple[str, list[Any]]:
        params: list[Any] = []
        selected = ", ".join(quote_ident(c) for c in columns) if columns else "*"
        sql = f"SELECT {selected} FROM {quote_ident(self.table)}"
        sql += self._where_sql(params)
        sql += self._tail_sql(params)
        return sql, params

    def to_aggregate(self, function: str, column: str = "*") -> tuple[str, list[Any]]:
        function = function.lower()
        if function not in AGGREGATES:
            raise ConfigError(f'Unsupported aggregate "{function}".')
        target = "*" if column == "*" else quote_ident(column)
        params: list[Any] = []
        sql = f"SELECT {function}({target}) AS ret FROM {quote_ident(self.table)}"
        sql += self._where_sql(params)
        return sql, params

    def to_insert(self, rows: Sequence[Mapping[str, Any]], returning: str | None = None) -> tuple[str, list[Any]]:
        if not rows:
            raise ConfigError("Nothing to insert.")
        columns: list[str] = []
        for row in rows:
            for name in row:
                if name not in columns:
                    columns.append(name)

        params: list[Any] = []
        values_sql = []
        for row in rows:
            placeholders = []
            for name in columns:
                if name in row:
                    params.append(row[name])
                    placeholders.append(f"${len(params)}")
                else:
                    placeholders.append("DEFAULT")
            values_sql.append("(" + ", ".join(placeholders) + ")")

        sql = (
            f"INSERT INTO {quote_ident(self.table)} ({', '.join(quote_ident(c) for c in columns)}) "
            f"VALUES {', '.join(values_sql)}"
        )
        if returning:
            sql += f" RETURNING {quote_ident(returning)}"
        return sql, params

    def to_update(self, attrs: Mapping[str, Any]) -> tuple[str, list[Any]]:
        if not attrs:
            raise ConfigError("Nothing to update.")
        params: list[Any] = []
        assignments = []
        for name, value in attrs.items():
            params.append(value)
            assignments.append(f"{quote_ident(name)} = ${len(params)}")
        sql = f"UPDATE {quote_ident(self.table)} SET {', '.join(assignments)}"
        sql += self._where_sql(params)
        return sql, params

    def to_delete(self) -> tuple[str, list[Any]]:
        params: list[Any] = []
        sql = f"DELETE FROM {quote_ident(self.table)}"
        sql += self._where_sql(params)
        return sql, params


def table(name: str) -> ScopedQuery:
    return ScopedQuery(name)
