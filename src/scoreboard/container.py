"""Service composition helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from .config import Settings, load_settings
from .db.adapters import DatabaseAdapter
from .db.factory import create_adapter
from .repositories import ConferencesRepository, GamesRepository, TeamsRepository
from .services import GamesService, IngestionService
from .logging import configure_logging
from .transactions import TransactionManager

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class Container:
    """Wired object graph for one process."""

    settings: Settings
    adapter: DatabaseAdapter
    transaction_manager: TransactionManager
    games: GamesRepository
    teams: TeamsRepository
    conferences: ConferencesRepository
    games_service: GamesService
    ingestion_service: IngestionService

    def health_status(self) -> Mapping[str, Any]:
        status = dict(self.adapter.health_status())
        status["active_transactions"] = self.transaction_manager.active_transaction_count
        return status

    def shutdown(self) -> None:
        """Roll back whatever is still open, then release the connection pool."""

        self.transaction_manager.force_rollback_all()
        self.adapter.disconnect()
        logger.info("container.shutdown")


def build_container(
    settings: Settings | None = None,
    *,
    adapter: DatabaseAdapter | None = None,
    connect: bool = True,
    setup_logging: bool = False,
) -> Container:
    settings = settings or load_settings()
    if setup_logging:
        configure_logging(settings.log_level, json=settings.log_json)
    adapter = adapter or create_adapter(settings)
    if connect:
        adapter.connect()

    limits = settings.pagination_limits()
    manager = TransactionManager(adapter)
    games = GamesRepository(adapter, limits=limits)
    teams = TeamsRepository(adapter, limits=limits)
    conferences = ConferencesRepository(adapter, limits=limits)
    return Container(
        settings=settings,
        adapter=adapter,
        transaction_manager=manager,
        games=games,
        teams=teams,
        conferences=conferences,
        games_service=GamesService(games, teams, manager, limits=limits),
        ingestion_service=IngestionService(games, teams, conferences, manager),
    )


__all__ = ["Container", "build_container"]
