"""
Operations against the store: CRUD, aggregates and transactions.
"""

from .registry import build_dao, close_all, get_dao
from .repository import Dao, resolve_aggregate_args
from .transaction import Transaction, TransactionCoordinator, TransactionState, is_transaction

__all__ = [
    "Dao",
    "Transaction",
    "TransactionCoordinator",
    "TransactionState",
    "build_dao",
    "close_all",
    "get_dao",
    "is_transaction",
    "resolve_aggregate_args",
]
