"""Plain data containers returned by repositories and services."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_json(value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@dataclass(slots=True)
class Pagination:
    """Common pagination metadata."""

    total: int = 0
    limit: int = 50
    offset: int = 0
    has_more: bool = False

    @classmethod
    def for_window(cls, *, total: int, limit: int, offset: int, returned: int) -> "Pagination":
        return cls(total=total, limit=limit, offset=offset, has_more=offset + returned < total)


@dataclass(slots=True)
class Page(Generic[T]):
    """Container for paginated repository results."""

    items: list[T]
    pagination: Pagination


@dataclass(slots=True)
class GameRecord:
    id: int
    game_id: str
    data_source: str
    date: str
    home_team: str
    away_team: str
    sport: str
    status: str
    league_name: str | None = None
    home_score: int | None = None
    away_score: int | None = None
    current_period: str | None = None
    period_scores: Any = None
    venue: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    timezone: str | None = None
    broadcast_info: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "GameRecord":
        return cls(
            id=row["id"],
            game_id=row["game_id"],
            data_source=row["data_source"],
            date=row["date"],
            home_team=row["home_team"],
            away_team=row["away_team"],
            sport=row["sport"],
            status=row["status"],
            league_name=row.get("league_name"),
            home_score=row.get("home_score"),
            away_score=row.get("away_score"),
            current_period=row.get("current_period"),
            period_scores=_parse_json(row.get("period_scores")),
            venue=row.get("venue"),
            city=row.get("city"),
            state=row.get("state"),
            country=row.get("country"),
            timezone=row.get("timezone"),
            broadcast_info=row.get("broadcast_info"),
            notes=row.get("notes"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


@dataclass(slots=True)
class TeamRecord:
    id: int
    team_id: str
    name: str
    sport: str
    gender: str
    level: str
    division: str | None = None
    conference: str | None = None
    short_name: str | None = None
    mascot: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    website: str | None = None
    logo_url: str | None = None
    colors: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TeamRecord":
        return cls(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            sport=row["sport"],
            gender=row["gender"],
            level=row["level"],
            division=row.get("division"),
            conference=row.get("conference"),
            short_name=row.get("short_name"),
            mascot=row.get("mascot"),
            city=row.get("city"),
            state=row.get("state"),
            country=row.get("country"),
            website=row.get("website"),
            logo_url=row.get("logo_url"),
            colors=row.get("colors"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


@dataclass(slots=True)
class ConferenceRecord:
    id: int
    conference_id: str
    name: str
    sport: str
    division: str
    gender: str
    level: str
    short_name: str | None = None
    website: str | None = None
    logo_url: str | None = None
    colors: str | None = None
    region: str | None = None
    country: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ConferenceRecord":
        return cls(
            id=row["id"],
            conference_id=row["conference_id"],
            name=row["name"],
            sport=row["sport"],
            division=row["division"],
            gender=row["gender"],
            level=row["level"],
            short_name=row.get("short_name"),
            website=row.get("website"),
            logo_url=row.get("logo_url"),
            colors=row.get("colors"),
            region=row.get("region"),
            country=row.get("country"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


@dataclass(slots=True)
class GameStatistics:
    """Aggregate counts over the games matching a filter set."""

    total_games: int = 0
    completed_games: int = 0
    live_games: int = 0
    scheduled_games: int = 0
    postponed_games: int = 0
    cancelled_games: int = 0
    unique_sports: int = 0
    unique_sources: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None) -> "GameStatistics":
        if row is None:
            return cls()
        return cls(**{item.name: int(row.get(item.name) or 0) for item in fields(cls)})


@dataclass(slots=True)
class IngestionResult:
    """Outcome of ingesting one game: ``created``, ``skipped`` or ``failed``."""

    action: str
    game_id: str | None = None
    teams_created: int = 0
    conferences_created: int = 0
    error: str | None = None


@dataclass(slots=True)
class IngestionSummary:
    total: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    details: list[IngestionResult] = field(default_factory=list)

    def add(self, result: IngestionResult) -> None:
        self.total += 1
        self.details.append(result)
        if result.action == "created":
            self.created += 1
        elif result.action == "skipped":
            self.skipped += 1
        else:
            self.failed += 1


__all__ = [
    "ConferenceRecord",
    "GameRecord",
    "GameStatistics",
    "IngestionResult",
    "IngestionSummary",
    "Page",
    "Pagination",
    "TeamRecord",
]
