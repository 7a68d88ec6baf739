"""Transaction coordination on top of a :class:`DatabaseAdapter`.

The manager owns the begin/commit/rollback lifecycle so repositories and
services only ever see an opaque :class:`TransactionHandle`. Every open
transaction is tracked in a registry keyed by a process-wide id, which lets
:meth:`TransactionManager.force_rollback_all` release whatever is still in
flight during shutdown.
"""

from __future__ import annotations

import functools
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

import structlog

from ..db.adapters.base import DatabaseAdapter, TransactionHandle
from .context import TransactionContext

T = TypeVar("T")

UnitOfWork = Callable[[TransactionHandle, int], T]
Compensator = Callable[[TransactionHandle, int], Any]


def _name_of(func: object) -> str:
    return getattr(func, "__name__", None) or "anonymous"


@dataclass(slots=True)
class RollbackOperation:
    """Forward action paired with an optional compensating action."""

    execute: Callable[[TransactionHandle, int], Any]
    rollback: Compensator | None = None
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or _name_of(self.execute)

    @classmethod
    def coerce(cls, item: "RollbackOperation | Mapping[str, Any] | Sequence[Any]") -> "RollbackOperation":
        if isinstance(item, cls):
            return item
        if isinstance(item, Mapping):
            return cls(execute=item["execute"], rollback=item.get("rollback"), name=item.get("name"))
        if isinstance(item, Sequence) and not isinstance(item, str) and 1 <= len(item) <= 2:
            execute, *rest = item
            return cls(execute=execute, rollback=rest[0] if rest else None)
        raise TypeError(f"Cannot build a rollback operation from {item!r}")


class TransactionManager:
    """Run units of work inside adapter transactions and track the open ones."""

    def __init__(self, adapter: DatabaseAdapter, *, logger: Any | None = None) -> None:
        self._adapter = adapter
        self._logger = logger or structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._active: dict[int, TransactionHandle] = {}
        self._counter = 0

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    # Registry ----------------------------------------------------------

    def _next_id(self) -> int:
        with self._lock:
            self._counter += 1
            return self._counter

    def _register(self, transaction_id: int, transaction: TransactionHandle) -> None:
        with self._lock:
            self._active[transaction_id] = transaction

    def _release(self, transaction_id: int) -> None:
        with self._lock:
            self._active.pop(transaction_id, None)

    def has_active_transactions(self) -> bool:
        with self._lock:
            return bool(self._active)

    @property
    def active_transaction_count(self) -> int:
        with self._lock:
            return len(self._active)

    def active_transaction_ids(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._active)

    # Lifecycle ---------------------------------------------------------

    def _begin(self, name: str, options: Mapping[str, Any] | None) -> tuple[int, TransactionHandle]:
        transaction_id = self._next_id()
        transaction = self._adapter.begin_raw_transaction()
        self._register(transaction_id, transaction)
        self._logger.debug(
            "transaction.started",
            transaction_id=transaction_id,
            operation=name,
            options=dict(options or {}),
        )
        return transaction_id, transaction

    def _rollback_after_error(
        self,
        transaction_id: int,
        transaction: TransactionHandle,
        name: str,
        error: BaseException,
    ) -> None:
        try:
            self._adapter.rollback_raw(transaction)
        except Exception as rollback_error:
            self._logger.error(
                "transaction.rollback_failed",
                transaction_id=transaction_id,
                operation=name,
                original_error=str(error),
                rollback_error=str(rollback_error),
            )
        else:
            self._logger.warning(
                "transaction.rolled_back",
                transaction_id=transaction_id,
                operation=name,
                error=str(error),
            )

    def execute_in_transaction(
        self,
        unit_of_work: UnitOfWork[T],
        options: Mapping[str, Any] | None = None,
    ) -> T:
        """Run ``unit_of_work(transaction, transaction_id)`` and commit its effects.

        Any exception raised by the unit of work or by the commit triggers a
        rollback and is then re-raised unchanged. A failed rollback is logged
        and never replaces the original exception. The transaction is
        removed from the registry on every path.
        """

        name = _name_of(unit_of_work)
        transaction_id, transaction = self._begin(name, options)
        try:
            result = unit_of_work(transaction, transaction_id)
            self._adapter.commit_raw(transaction)
        except BaseException as error:
            self._rollback_after_error(transaction_id, transaction, name, error)
            raise
        finally:
            self._release(transaction_id)
        self._logger.debug("transaction.committed", transaction_id=transaction_id, operation=name)
        return result

    def execute_multiple_in_transaction(
        self,
        operations: Iterable[UnitOfWork[Any]],
        options: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Run ``operations`` in order inside one transaction; results keep call order."""

        steps = list(operations)

        def run_all(transaction: TransactionHandle, transaction_id: int) -> list[Any]:
            results: list[Any] = []
            for index, operation in enumerate(steps):
                self._logger.debug(
                    "transaction.operation",
                    transaction_id=transaction_id,
                    operation_index=index,
                    operation=_name_of(operation),
                )
                results.append(operation(transaction, transaction_id))
            return results

        return self.execute_in_transaction(run_all, options)

    def execute_with_rollback_on_failure(
        self,
        operations: Iterable[RollbackOperation | Mapping[str, Any] | Sequence[Any]],
        options: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Run forward actions, compensating completed ones newest-first on failure.

        A compensator becomes eligible only once its own forward action has
        returned. Compensator failures are logged individually; the error of
        the failing forward action is what propagates.
        """

        steps = [RollbackOperation.coerce(item) for item in operations]

        def run_with_compensation(transaction: TransactionHandle, transaction_id: int) -> list[Any]:
            results: list[Any] = []
            compensators: list[tuple[str, Compensator]] = []
            try:
                for index, step in enumerate(steps):
                    self._logger.debug(
                        "transaction.operation",
                        transaction_id=transaction_id,
                        operation_index=index,
                        operation=step.label,
                    )
                    results.append(step.execute(transaction, transaction_id))
                    if step.rollback is not None:
                        compensators.append((step.label, step.rollback))
            except BaseException as error:
                self._compensate(transaction, transaction_id, compensators, error)
                raise
            return results

        return self.execute_in_transaction(run_with_compensation, options)

    def _compensate(
        self,
        transaction: TransactionHandle,
        transaction_id: int,
        compensators: list[tuple[str, Compensator]],
        error: BaseException,
    ) -> None:
        self._logger.warning(
            "transaction.compensating",
            transaction_id=transaction_id,
            error=str(error),
            compensator_count=len(compensators),
        )
        for label, compensator in reversed(compensators):
            try:
                compensator(transaction, transaction_id)
            except Exception as compensation_error:
                self._logger.error(
                    "transaction.compensation_failed",
                    transaction_id=transaction_id,
                    operation=label,
                    error=str(compensation_error),
                )

    def force_rollback_all(self) -> None:
        """Roll back every registered transaction; failures are logged, never raised."""

        with self._lock:
            pending = list(self._active.items())
            self._active.clear()
        if not pending:
            return

        self._logger.warning("transaction.force_rollback", active_count=len(pending))
        for transaction_id, transaction in pending:
            try:
                self._adapter.rollback_raw(transaction)
            except Exception as error:
                self._logger.error(
                    "transaction.force_rollback_failed",
                    transaction_id=transaction_id,
                    error=str(error),
                )
            else:
                self._logger.debug("transaction.force_rolled_back", transaction_id=transaction_id)

    def create_transaction_context(
        self, options: Mapping[str, Any] | None = None
    ) -> TransactionContext:
        transaction_id, transaction = self._begin("context", options)
        return TransactionContext(
            self._adapter,
            transaction,
            transaction_id,
            release=self._release,
            logger=self._logger,
        )


def with_transaction(options: Mapping[str, Any] | None = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Run the decorated method inside ``self.transaction_manager``.

    The wrapped method receives ``transaction`` and ``transaction_id`` as
    keyword arguments.
    """

    def decorator(method: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(method)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            manager = getattr(self, "transaction_manager", None)
            if not isinstance(manager, TransactionManager):
                raise TypeError(
                    f"{type(self).__name__}.{method.__name__} requires a 'transaction_manager' attribute"
                )

            def unit_of_work(transaction: TransactionHandle, transaction_id: int) -> T:
                return method(
                    self, *args, transaction=transaction, transaction_id=transaction_id, **kwargs
                )

            unit_of_work.__name__ = method.__name__
            return manager.execute_in_transaction(unit_of_work, options)

        return wrapper

    return decorator


__all__ = ["RollbackOperation", "TransactionManager", "with_transaction"]
