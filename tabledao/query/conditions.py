"""
Translate request query parameters into query conditions.

Filter parameters carry a prefix, an optional operator token and the column:

    s_age=30        ->  ("age", "=", "30")
    s_lt_age=30     ->  ("age", "<", "30")
    s_l_name=%ada%  ->  ("name", "like", "%ada%")

Recognized operator tokens: eq, lt, lte, gt, gte, ne, l (like),
nl (not like), b (between). When the segment before the first underscore is
not one of them, the whole remainder is the column name and the operator is
"=" (so `s_created_at` filters on `created_at`).

Pagination uses `pn` (1-based page number) and `pc` (rows per page);
ordering uses `order` = "column,direction;column,direction".
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from tabledao.core.errors import ConfigError
from tabledao.models.schema import CREATION_TIME_COLUMN

from .builder import ScopedQuery

QUERY_PAGE_NUMBER = "pn"
QUERY_PAGE_COUNT = "pc"
QUERY_ORDER_BY = "order"

FILTER_PREFIX = "s_"

OPERATOR_TOKENS: Mapping[str, str] = {
    "eq": "=",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "ne": "!=",
    "l": "like",
    "nl": "not like",
    "b": "between",
}

ConditionTriple = tuple[str, str, Any]


@dataclass(frozen=True)
class ParsedName:
    operator: str
    column: str


def is_filter_param(name: str, value: Any = None) -> bool:
    return name.startswith(FILTER_PREFIX)


def parse_cnd(name: str) -> ParsedName:
    """
    Split a filter parameter name into (operator, column).
    """
    name = name[len(FILTER_PREFIX) :]
    token, sep, rest = name.partition("_")
    operator = OPERATOR_TOKENS.get(token) if sep and token else None
    if operator is None:
        return ParsedName(operator="=", column=name)
    return ParsedName(operator=operator, column=rest)


@dataclass(frozen=True)
class ConditionConfig:
    where: Callable[[str, Any], bool] = is_filter_param
    parse_cnd: Callable[[str], ParsedName] = parse_cnd


DEFAULT_CONFIG = ConditionConfig()


def to_conditions(params: Mapping[str, Any], config: ConditionConfig | None = None) -> list[ConditionTriple]:
    """
    Pick the filter parameters out of `params` and turn each into a
    (column, operator, value) triple, in parameter order.
    """
    config = config or DEFAULT_CONFIG
    conditions: list[ConditionTriple] = []
    for name, value in params.items():
        if not config.where(name, value):
            continue
        parsed = config.parse_cnd(name)
        conditions.append((parsed.column, parsed.operator, value))
    return conditions


def _parse_clause(clause: str) -> dict[str, str]:
    column, _, direction = clause.partition(",")
    return {"column": column.strip(), "direction": direction.strip() or "asc"}


def _order_clause(entry: Any) -> dict[str, str]:
    if isinstance(entry, Mapping):
        return dict(entry)
    if isinstance(entry, str):
        return _parse_clause(entry)
    if isinstance(entry, (list, tuple)) and 1 <= len(entry) <= 2 and all(isinstance(e, str) for e in entry):
        return {"column": entry[0], "direction": entry[1] if len(entry) == 2 else "asc"}
    raise ConfigError("The order param can not be parsed correct!")


def parse_order(order: Any) -> list[dict[str, str]]:
    """
    Parse "column,direction;column,direction" into order clauses.

    No order means newest first (creation time, descending). A mapping, or
    a list whose entries are mappings, "column,direction" strings or
    (column[, direction]) pairs, is taken as already structured.
    """
    if not order:
        return [{"column": CREATION_TIME_COLUMN, "direction": "desc"}]

    if isinstance(order, str):
        return [_parse_clause(clause) for clause in order.split(";")]
    if isinstance(order, Mapping):
        return [dict(order)]
    if isinstance(order, (list, tuple)):
        return [_order_clause(entry) for entry in order]
    raise ConfigError("The order param can not be parsed correct!")


def append_order_by(query: ScopedQuery, order: Any) -> ScopedQuery:
    if not order:
        return query
    for clause in parse_order(order):
        try:
            query = query.order_by(clause["column"], clause.get("direction") or "asc")
        except KeyError as e:
            raise ConfigError(f"Order clause without a column: {clause!r}") from e
    return query


def _page_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f'Page parameter "{name}" must be an integer, got {value!r}.') from e


def page_bounds(page_number: Any, page_count: Any) -> tuple[int, int] | None:
    """
    Return (limit, offset) for a 1-based page, or None when paging is off.

    A page number below 1 is an error; a missing, zero or negative page count
    just disables paging.
    """
    pn = _page_int(page_number, QUERY_PAGE_NUMBER) if page_number not in (None, "") else 1
    if pn < 1:
        raise ConfigError("page number must greater than 0")
    if not page_count:
        return None
    pc = _page_int(page_count, QUERY_PAGE_COUNT)
    if pc < 1:
        return None
    return pc, (pn - 1) * pc


def append_limit(query: ScopedQuery, page_number: Any = None, page_count: Any = None) -> ScopedQuery:
    bounds = page_bounds(page_number, page_count)
    if bounds is None:
        return query
    limit, offset = bounds
    return query.limit(limit).offset(offset)


def append_order_by_and_limit(query: ScopedQuery, params: Mapping[str, Any]) -> ScopedQuery:
    query = append_order_by(query, params.get(QUERY_ORDER_BY))
    return append_limit(query, params.get(QUERY_PAGE_NUMBER), params.get(QUERY_PAGE_COUNT))


def to_scoped_query(
    query: ScopedQuery,
    params: Mapping[str, Any],
    config: ConditionConfig | None = None,
) -> ScopedQuery:
    """
    Apply filters, order and paging from request parameters to `query`.
    """
    query = query.where_all(to_conditions(params, config))
    return append_order_by_and_limit(query, params)
