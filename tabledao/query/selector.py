"""
Selectors: what rows an operation targets.

A selector is one of

- None                 every row of the table
- Identifier(value)    the row whose single primary-key column equals value
- FilterMap({...})     column = value for every entry, AND-ed
- ConditionList([...]) explicit (column[, operator], value) entries, AND-ed in order
- PreScoped(query)     an already-built ScopedQuery, re-scoped to the table

`as_selector` maps loose caller input onto these variants; `normalize`
turns a selector into a ScopedQuery bound to a schema's table. Neither
mutates its inputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Union
from uuid import UUID

from tabledao.core.errors import ConfigError
from tabledao.models.schema import Schema

from .builder import LIST_OPERATORS, PATTERN_OPERATORS, Condition, ScopedQuery, split_values

SCALAR_TYPES = (str, int, float, Decimal, UUID)


@dataclass(frozen=True)
class Identifier:
    value: Any


@dataclass(frozen=True)
class FilterMap:
    filters: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))


@dataclass(frozen=True)
class ConditionList:
    conditions: Iterable[Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", tuple(Condition.from_entry(entry) for entry in self.conditions))


@dataclass(frozen=True)
class PreScoped:
    query: ScopedQuery


Selector = Union[Identifier, FilterMap, ConditionList, PreScoped, None]
SELECTOR_TYPES = (Identifier, FilterMap, ConditionList, PreScoped)


def is_scalar(value: Any) -> bool:
    return isinstance(value, SCALAR_TYPES) and not isinstance(value, bool)


def as_selector(value: Any) -> Any:
    """
    Map loose input onto a selector variant by its shape.

    None stays None; variants pass through; a ScopedQuery becomes PreScoped;
    a scalar (str, int, float, Decimal, UUID; not bool) becomes Identifier;
    a mapping becomes FilterMap; a list or tuple becomes ConditionList.
    Anything else is returned unchanged.
    """
    if value is None or isinstance(value, SELECTOR_TYPES):
        return value
    if isinstance(value, ScopedQuery):
        return PreScoped(value)
    if is_scalar(value):
        return Identifier(value)
    if isinstance(value, Mapping):
        return FilterMap(value)
    if isinstance(value, (list, tuple)):
        return ConditionList(value)
    return value


def _typed(schema: Schema, condition: Condition) -> Condition:
    column = schema.columns.get(condition.column)
    if column is None or condition.value is None or condition.operator in PATTERN_OPERATORS:
        return condition
    if condition.operator in LIST_OPERATORS:
        value: Any = [column.coerce(condition.column, v) for v in split_values(condition.value)]
    else:
        value = column.coerce(condition.column, condition.value)
    return replace(condition, value=value)


def normalize(schema: Schema, selector: Any, transaction: Any = None) -> Any:
    """
    Resolve `selector` to a ScopedQuery on `schema.table_name`.

    Condition values are converted to their column's declared type, so
    `"42"` selects `id = 42` on a bigserial key.

    Unknown shapes are returned unchanged for callers that bring their own
    query object.
    """
    selector = as_selector(selector)
    base = ScopedQuery(schema.table_name)

    if selector is None:
        query = base
    elif isinstance(selector, PreScoped):
        query = selector.query.scoped(schema.table_name)
    elif isinstance(selector, Identifier):
        if len(schema.primary_key) != 1:
            raise ConfigError(
                f'Table "{schema.table_name}" has {len(schema.primary_key)} primary key columns; '
                "a single identifier can not select a row."
            )
        query = base.where(schema.primary_key[0], selector.value)
    elif isinstance(selector, FilterMap):
        query = base.where(selector.filters)
    elif isinstance(selector, ConditionList):
        query = base.where_all(selector.conditions)
    else:
        return selector

    query = replace(query, conditions=tuple(_typed(schema, condition) for condition in query.conditions))
    if transaction is not None:
        query = query.transacting(transaction)
    return query
