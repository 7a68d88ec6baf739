"""Schema, adapters and wiring for the backing store."""

from .db_init import init_db
from .db_models import Base, ConferenceModel, GameModel, TeamModel

__all__ = ["Base", "ConferenceModel", "GameModel", "TeamModel", "init_db"]
