"""Conferences repository."""

from __future__ import annotations

from ..schemas import ConferenceRecord
from .catalog import CatalogRepository
from .query import FilterField

CONFERENCE_FILTERS: tuple[FilterField, ...] = (
    FilterField.equals("sport"),
    FilterField.equals("division"),
    FilterField.equals("gender"),
    FilterField.equals("level"),
)

CONFERENCE_COLUMNS = (
    "conference_id",
    "name",
    "short_name",
    "sport",
    "division",
    "gender",
    "level",
    "website",
    "logo_url",
    "colors",
    "region",
    "country",
)


class ConferencesRepository(CatalogRepository[ConferenceRecord]):
    entity = "conference"
    table = "conferences"
    key_column = "conference_id"
    columns = CONFERENCE_COLUMNS
    filters = CONFERENCE_FILTERS
    record_type = ConferenceRecord


__all__ = ["CONFERENCE_FILTERS", "ConferencesRepository"]
