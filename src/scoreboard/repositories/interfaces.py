"""Repository interfaces for persistence layer implementations."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, TypeVar

from ..db.adapters.base import TransactionHandle

RecordT = TypeVar("RecordT", covariant=True)


class Repository(Protocol[RecordT]):
    """Minimal CRUD surface shared by every entity repository.

    Every method accepts an optional ``transaction`` handle as its last
    argument; without one the statement runs on the adapter's default
    session and commits on its own.
    """

    def find_by_id(self, identifier: str, transaction: TransactionHandle | None = None) -> RecordT | None:
        """Return the record keyed by ``identifier`` or ``None``."""

    def create(self, data: Mapping[str, Any], transaction: TransactionHandle | None = None) -> RecordT | None:
        """Insert a record and return it as stored."""

    def update(
        self,
        identifier: str,
        data: Mapping[str, Any],
        transaction: TransactionHandle | None = None,
    ) -> RecordT | None:
        """Apply the allow-listed fields of ``data``; ``None`` when nothing matches."""

    def delete(self, identifier: str, transaction: TransactionHandle | None = None) -> bool:
        """Delete the record, returning whether a row was removed."""

    def count(self, filters: Mapping[str, Any] | None = None, transaction: TransactionHandle | None = None) -> int:
        """Count the records matching ``filters``."""

    def exists(self, criteria: Mapping[str, Any], transaction: TransactionHandle | None = None) -> bool:
        """Return whether at least one record matches ``criteria``."""


__all__ = ["Repository"]
