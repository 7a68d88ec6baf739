"""SQLAlchemy implementation of :class:`DatabaseAdapter`."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Sequence

import sqlalchemy as sa
import structlog
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.pool import StaticPool

from ...exceptions import DriverError, InvalidTransactionStateError, handle_sqlalchemy_errors
from ..db_init import init_db
from .base import ExecResult, Row, TransactionHandle, bind_params

logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_database(database: str | None) -> bool:
    return database in (None, "", ":memory:") or str(database).startswith("file::memory:")


class SqlAlchemyAdapter:
    """Execute raw parameterized statements through a SQLAlchemy ``Engine``.

    Statements without a transaction handle run on a pooled connection: reads
    on a plain connection, writes inside ``engine.begin()`` so they commit
    immediately. Statements with a handle run on the handle's dedicated
    connection until :meth:`commit_raw` or :meth:`rollback_raw` releases it.

    In-memory SQLite URLs share a single ``StaticPool`` connection, so only
    one transaction may be open at a time against them.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        create_schema: bool = True,
    ) -> None:
        self._url = make_url(url)
        self._echo = echo
        self._create_schema = create_schema
        self._engine: Engine | None = None

    @property
    def backend(self) -> str:
        return self._url.get_backend_name()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DriverError("Database not connected", operation="engine")
        return self._engine

    # Connection lifecycle ----------------------------------------------

    def connect(self) -> None:
        if self._engine is not None:
            return
        with handle_sqlalchemy_errors(operation="connect"):
            engine = sa.create_engine(self._url, echo=self._echo, **self._engine_options())
            if self.backend == "sqlite":
                sa.event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            if self._create_schema:
                init_db(engine)
        self._engine = engine
        logger.info("database.connected", backend=self.backend, database=self._url.database)

    def disconnect(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("database.disconnected", backend=self.backend)

    def is_connected(self) -> bool:
        if self._engine is None:
            return False
        try:
            self.raw_query_one("SELECT 1")
        except DriverError:
            return False
        return True

    def health_status(self) -> dict[str, Any]:
        timestamp = datetime.now(timezone.utc).isoformat()
        started = time.perf_counter()
        try:
            self.raw_query_one("SELECT 1")
        except DriverError as exc:
            return {
                "status": "unhealthy",
                "database": self.backend,
                "error": str(exc),
                "timestamp": timestamp,
                "connected": False,
            }
        return {
            "status": "healthy",
            "database": self.backend,
            "response_time_ms": round((time.perf_counter() - started) * 1000, 3),
            "timestamp": timestamp,
            "connected": True,
        }

    def _engine_options(self) -> dict[str, Any]:
        if self.backend != "sqlite":
            return {"pool_pre_ping": True}
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if _is_memory_database(self._url.database):
            options["poolclass"] = StaticPool
        return options

    # Statements --------------------------------------------------------

    def raw_query(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> list[Row]:
        statement = sa.text(text)
        bound = bind_params(params)
        with handle_sqlalchemy_errors(operation="query"):
            if transaction is not None:
                result = self._connection_for(transaction).execute(statement, bound)
                return [dict(row) for row in result.mappings()]
            with self.engine.connect() as connection:
                result = connection.execute(statement, bound)
                return [dict(row) for row in result.mappings()]

    def raw_query_one(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> Row | None:
        rows = self.raw_query(text, params, transaction)
        return rows[0] if rows else None

    def raw_exec(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> ExecResult:
        statement = sa.text(text)
        bound = bind_params(params)
        with handle_sqlalchemy_errors(operation="exec"):
            if transaction is not None:
                result = self._connection_for(transaction).execute(statement, bound)
                return ExecResult(affected_rows=result.rowcount, insert_id=result.lastrowid)
            with self.engine.begin() as connection:
                result = connection.execute(statement, bound)
                return ExecResult(affected_rows=result.rowcount, insert_id=result.lastrowid)

    # Transactions ------------------------------------------------------

    def begin_raw_transaction(self) -> TransactionHandle:
        with handle_sqlalchemy_errors(operation="begin"):
            connection = self.engine.connect()
            try:
                connection.begin()
            except sa.exc.SQLAlchemyError:
                connection.close()
                raise
        return TransactionHandle(session=connection)

    def commit_raw(self, transaction: TransactionHandle) -> None:
        if transaction.is_finalized:
            raise InvalidTransactionStateError("Transaction already committed or rolled back")
        connection: Connection = transaction.session
        with handle_sqlalchemy_errors(operation="commit"):
            connection.commit()
        transaction.committed = True
        connection.close()

    def rollback_raw(self, transaction: TransactionHandle) -> None:
        if transaction.is_finalized:
            return
        connection: Connection = transaction.session
        try:
            with handle_sqlalchemy_errors(operation="rollback"):
                connection.rollback()
        finally:
            transaction.rolled_back = True
            connection.close()

    def _connection_for(self, transaction: TransactionHandle) -> Connection:
        if transaction.is_finalized:
            raise InvalidTransactionStateError(
                "Transaction already committed or rolled back; open a new one"
            )
        return transaction.session


__all__ = ["SqlAlchemyAdapter"]
