"""Caller-driven transaction boundary handed out by the manager."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

import structlog

from ..db.adapters.base import DatabaseAdapter, TransactionHandle
from ..exceptions import InvalidTransactionStateError


class TransactionState(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionContext:
    """Open transaction whose commit or rollback is decided by the caller.

    The context is registered with its manager while active. Leaving a
    ``with`` block on a still-active context rolls it back, so an explicit
    :meth:`commit` is required to persist anything.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        transaction: TransactionHandle,
        transaction_id: int,
        *,
        release: Callable[[int], None],
        logger: Any | None = None,
    ) -> None:
        self._adapter = adapter
        self._transaction = transaction
        self._transaction_id = transaction_id
        self._release = release
        self._logger = logger or structlog.get_logger(__name__)
        self._state = TransactionState.ACTIVE

    @property
    def transaction(self) -> TransactionHandle:
        return self._transaction

    @property
    def transaction_id(self) -> int:
        return self._transaction_id

    @property
    def state(self) -> TransactionState:
        self._sync_with_handle()
        return self._state

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def _sync_with_handle(self) -> None:
        # The manager may finalize the handle behind our back (force_rollback_all).
        if self._state is not TransactionState.ACTIVE:
            return
        if self._transaction.committed:
            self._state = TransactionState.COMMITTED
        elif self._transaction.rolled_back:
            self._state = TransactionState.ROLLED_BACK
        else:
            return
        self._release(self._transaction_id)

    def _ensure_active(self, action: str) -> None:
        if not self.is_active:
            raise InvalidTransactionStateError(
                f"Cannot {action} transaction {self._transaction_id}: already {self._state.value}"
            )

    def commit(self) -> None:
        """Commit the transaction. A driver failure leaves the context active."""

        self._ensure_active("commit")
        self._adapter.commit_raw(self._transaction)
        self._state = TransactionState.COMMITTED
        self._release(self._transaction_id)
        self._logger.info("transaction.context.committed", transaction_id=self._transaction_id)

    def rollback(self) -> None:
        self._ensure_active("roll back")
        try:
            self._adapter.rollback_raw(self._transaction)
        finally:
            self._state = TransactionState.ROLLED_BACK
            self._release(self._transaction_id)
        self._logger.info("transaction.context.rolled_back", transaction_id=self._transaction_id)

    def __enter__(self) -> "TransactionContext":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object,
    ) -> None:
        if not self.is_active:
            return
        if exc_type is None:
            self.rollback()
            return
        try:
            self.rollback()
        except Exception as rollback_error:
            self._logger.error(
                "transaction.rollback_failed",
                transaction_id=self._transaction_id,
                error=str(rollback_error),
            )

    def __repr__(self) -> str:
        return f"TransactionContext(id={self._transaction_id}, state={self._state.value})"


__all__ = ["TransactionContext", "TransactionState"]
