"""Driver adapters for the backing store."""

from .base import DatabaseAdapter, ExecResult, Row, TransactionHandle, bind_params, placeholder
from .sqlalchemy_adapter import SqlAlchemyAdapter

__all__ = [
    "DatabaseAdapter",
    "ExecResult",
    "Row",
    "SqlAlchemyAdapter",
    "TransactionHandle",
    "bind_params",
    "placeholder",
]
