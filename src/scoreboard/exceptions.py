"""Domain level exceptions and helpers for the data-access layer."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

from sqlalchemy import exc as sa_exc

__all__ = [
    "AppError",
    "RepositoryError",
    "DriverError",
    "IntegrityConstraintViolation",
    "InvalidTransactionStateError",
    "NotFoundError",
    "ValidationFailure",
    "CompositeFailure",
    "ensure_found",
    "handle_sqlalchemy_errors",
]


class AppError(Exception):
    """Base class for application specific errors."""


class RepositoryError(AppError):
    """Base class for persistence layer failures."""


class DriverError(RepositoryError):
    """Raised when the backing store rejects a begin/commit/rollback or statement."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class IntegrityConstraintViolation(DriverError):
    """Raised when a database constraint is violated."""


class InvalidTransactionStateError(RepositoryError):
    """Raised when a finalized transaction is committed, rolled back or reused."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} '{identifier}' not found")
        self.entity = entity
        self.identifier = identifier


class ValidationFailure(AppError):
    """Raised before any statement is issued when input violates a constraint."""

    def __init__(self, message: str, *, field: str | None = None, value: object = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class CompositeFailure(AppError):
    """Aggregates the failures of several independent items of a batch."""

    def __init__(self, failures: Sequence[tuple[str, Exception]]) -> None:
        self.failures = list(failures)
        summary = "; ".join(f"{item}: {error}" for item, error in self.failures)
        super().__init__(f"{len(self.failures)} item(s) failed: {summary}")


@dataclass(slots=True)
class _OperationContext:
    """Internal helper describing the failing operation for error messages."""

    operation: str | None = None

    def format(self, message: str) -> str:
        if self.operation:
            return f"{self.operation}: {message}"
        return message


def ensure_found(record: object | None, *, entity: str, identifier: object) -> object:
    """Ensure a record exists, otherwise raise :class:`NotFoundError`."""

    if record is None:
        raise NotFoundError(entity, identifier)
    return record


def _driver_message(exc: sa_exc.SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original) if original is not None else str(exc)


def _translate_sqlalchemy_error(
    exc: sa_exc.SQLAlchemyError, *, context: _OperationContext
) -> DriverError:
    message = context.format(_driver_message(exc))
    if isinstance(exc, sa_exc.IntegrityError):
        return IntegrityConstraintViolation(message, operation=context.operation)
    return DriverError(message, operation=context.operation)


@contextmanager
def handle_sqlalchemy_errors(*, operation: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into :class:`DriverError` subclasses."""

    context = _OperationContext(operation)
    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        raise _translate_sqlalchemy_error(exc, context=context) from exc
