"""Service layer."""

from .games_service import GamesService
from .ingestion_service import IngestionService

__all__ = ["GamesService", "IngestionService"]
