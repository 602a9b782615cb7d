"""
Async data-access layer over PostgreSQL (asyncpg).

Declare schemas with `define_model`, build a named DAO from config, and run
CRUD, aggregate and transactional operations against it. Rows are targeted
through selectors: a primary-key value, a filter mapping, a list of
conditions, or a pre-built `ScopedQuery`.
"""

from .core.errors import (
    AmbiguitySelectorError,
    ConfigError,
    DaoError,
    StoreError,
    TransactionClosedError,
    ValidationError,
)
from .core.settings import DAO_INSTANCE_DEF, DaoSettings
from .dao import Dao, Transaction, TransactionState, build_dao, close_all, get_dao, is_transaction
from .models import Action, Column, Constraint, Entity, Schema, define_model
from .query import (
    Condition,
    ConditionConfig,
    ConditionList,
    FilterMap,
    Identifier,
    PreScoped,
    ScopedQuery,
    append_limit,
    append_order_by,
    append_order_by_and_limit,
    as_selector,
    normalize,
    parse_cnd,
    parse_order,
    to_conditions,
    to_scoped_query,
)

__all__ = [
    "DAO_INSTANCE_DEF",
    "Action",
    "AmbiguitySelectorError",
    "Column",
    "Condition",
    "ConditionConfig",
    "ConditionList",
    "ConfigError",
    "Constraint",
    "Dao",
    "DaoError",
    "DaoSettings",
    "Entity",
    "FilterMap",
    "Identifier",
    "PreScoped",
    "Schema",
    "ScopedQuery",
    "StoreError",
    "Transaction",
    "TransactionClosedError",
    "TransactionState",
    "ValidationError",
    "append_limit",
    "append_order_by",
    "append_order_by_and_limit",
    "as_selector",
    "build_dao",
    "close_all",
    "define_model",
    "get_dao",
    "is_transaction",
    "normalize",
    "parse_cnd",
    "parse_order",
    "to_conditions",
    "to_scoped_query",
]
