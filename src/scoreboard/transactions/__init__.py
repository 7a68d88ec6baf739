"""Transaction coordination for the data-access layer."""

from .context import TransactionContext, TransactionState
from .manager import RollbackOperation, TransactionManager, with_transaction

__all__ = [
    "RollbackOperation",
    "TransactionContext",
    "TransactionManager",
    "TransactionState",
    "with_transaction",
]
