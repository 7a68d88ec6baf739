"""Compensated steps shared by the write flows of the service layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..db.adapters.base import TransactionHandle
from ..repositories.catalog import CatalogRepository
from ..transactions import RollbackOperation


@dataclass(slots=True)
class CatalogStep:
    """Find-or-create of one catalog row, undone by deleting what it created."""

    repository: CatalogRepository[Any]
    data: Mapping[str, Any]
    created: list[str] = field(default_factory=list)

    def execute(self, transaction: TransactionHandle, _transaction_id: int) -> Any:
        data = self.data
        existing = self.repository.find_by_name(
            data.get("name"), data.get("sport"), data.get("division"), data.get("gender"), transaction
        )
        if existing is not None:
            return existing
        record = self.repository.create(data, transaction)
        if record is not None:
            self.created.append(getattr(record, self.repository.key_column))
        return record

    def rollback(self, transaction: TransactionHandle, _transaction_id: int) -> None:
        for key in reversed(self.created):
            self.repository.delete(key, transaction)

    def operation(self) -> RollbackOperation:
        return RollbackOperation(
            self.execute,
            self.rollback,
            name=f"ensure_{self.repository.entity}[{self.data.get('name')}]",
        )


__all__ = ["CatalogStep"]
