"""
Query construction: scoped queries, selectors and request-parameter translation.
"""

from .builder import Condition, Order, ScopedQuery, table
from .conditions import (
    QUERY_ORDER_BY,
    QUERY_PAGE_COUNT,
    QUERY_PAGE_NUMBER,
    ConditionConfig,
    append_limit,
    append_order_by,
    append_order_by_and_limit,
    parse_cnd,
    parse_order,
    to_conditions,
    to_scoped_query,
)
from .selector import ConditionList, FilterMap, Identifier, PreScoped, Selector, as_selector, normalize

__all__ = [
    "QUERY_ORDER_BY",
    "QUERY_PAGE_COUNT",
    "QUERY_PAGE_NUMBER",
    "Condition",
    "ConditionConfig",
    "ConditionList",
    "FilterMap",
    "Identifier",
    "Order",
    "PreScoped",
    "ScopedQuery",
    "Selector",
    "append_limit",
    "append_order_by",
    "append_order_by_and_limit",
    "as_selector",
    "normalize",
    "parse_cnd",
    "parse_order",
    "table",
    "to_conditions",
    "to_scoped_query",
]
