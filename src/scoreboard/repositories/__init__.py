"""SQL repositories and the query composition helpers they share."""

from .base import SqlRepository
from .conferences import ConferencesRepository
from .games import GamesRepository
from .interfaces import Repository
from .query import FilterField, PaginationLimits, PaginationSpec, SortDirection, Statement, compose_filters
from .teams import TeamsRepository

__all__ = [
    "ConferencesRepository",
    "FilterField",
    "GamesRepository",
    "PaginationLimits",
    "PaginationSpec",
    "Repository",
    "SortDirection",
    "SqlRepository",
    "Statement",
    "TeamsRepository",
    "compose_filters",
]
