from __future__ import annotations

import pytest

from scoreboard.exceptions import ValidationFailure
from scoreboard.repositories import ConferencesRepository, TeamsRepository
from scoreboard.repositories.catalog import natural_key, slugify
from scoreboard.repositories.query import PaginationLimits, PaginationSpec, SortDirection
from tests.mocks.driver import RecordingAdapter

DUKE = {"name": "Duke", "sport": "basketball", "division": "d1", "gender": "men", "conference": "ACC"}


@pytest.mark.parametrize(
    ("name", "slug"),
    [
        ("Duke", "duke"),
        ("Texas A&M", "texas-a-m"),
        ("  St. John's (NY) ", "st-john-s-ny"),
    ],
)
def test_slugify(name: str, slug: str) -> None:
    assert slugify(name) == slug


def test_natural_key_combines_identity_fields() -> None:
    assert natural_key({"name": "North Carolina", "sport": "soccer", "division": "d1", "gender": "women"}) == (
        "soccer-d1-women-north-carolina"
    )


def test_team_create_generates_key_and_defaults(teams_repository: TeamsRepository) -> None:
    team = teams_repository.create(DUKE)

    assert team is not None
    assert team.team_id == "basketball-d1-men-duke"
    assert team.level == "college"
    assert team.mascot is None
    assert teams_repository.find_by_id(team.team_id) == team


def test_team_create_keeps_explicit_key(teams_repository: TeamsRepository) -> None:
    team = teams_repository.create({**DUKE, "team_id": "duke-mbb", "level": "pro"})
    assert team.team_id == "duke-mbb"
    assert team.level == "pro"


@pytest.mark.parametrize("missing", ["name", "sport", "division", "gender"])
def test_team_create_validates_before_any_statement(missing: str) -> None:
    adapter = RecordingAdapter()
    data = dict(DUKE)
    data.pop(missing)

    with pytest.raises(ValidationFailure):
        TeamsRepository(adapter).create(data)
    assert adapter.calls == []


def test_find_or_create_is_idempotent(teams_repository: TeamsRepository) -> None:
    first = teams_repository.find_or_create(DUKE)
    second = teams_repository.find_or_create(DUKE)

    assert first == second
    assert teams_repository.count() == 1


def test_find_by_name_and_conference(teams_repository: TeamsRepository) -> None:
    teams_repository.create(DUKE)
    teams_repository.create({**DUKE, "name": "Virginia"})
    teams_repository.create({**DUKE, "name": "Virginia", "sport": "soccer"})

    assert teams_repository.find_by_name("Duke", "basketball", "d1", "men").name == "Duke"
    assert teams_repository.find_by_name("Duke", "basketball", "d1", "women") is None
    assert [team.name for team in teams_repository.find_by_conference("ACC", sport="basketball")] == [
        "Duke",
        "Virginia",
    ]
    assert len(teams_repository.find_by_conference("ACC")) == 3


def test_team_update_rules(teams_repository: TeamsRepository) -> None:
    team = teams_repository.create(DUKE)

    updated = teams_repository.update(team.team_id, {"mascot": "Blue Devils", "team_id": "other"})
    assert updated.mascot == "Blue Devils"
    assert updated.team_id == team.team_id

    with pytest.raises(ValidationFailure):
        teams_repository.update(team.team_id, {"bogus": "x"})
    assert teams_repository.update("missing", {"mascot": "Nobody"}) is None


def test_team_find_all_returns_page(teams_repository: TeamsRepository) -> None:
    for name in ("Duke", "Virginia", "Clemson"):
        teams_repository.create({**DUKE, "name": name})
    teams_repository.create({**DUKE, "name": "Kentucky", "conference": "SEC"})

    page = teams_repository.find_all({"conference": "ACC", "unknown": "ignored"}, {"limit": 2})

    assert [team.name for team in page.items] == ["Clemson", "Duke"]
    assert page.pagination.total == 3
    assert page.pagination.limit == 2
    assert page.pagination.has_more is True

    last = teams_repository.find_all({"conference": "ACC"}, {"limit": 2, "offset": 2})
    assert [team.name for team in last.items] == ["Virginia"]
    assert last.pagination.has_more is False


def test_team_delete_and_exists(teams_repository: TeamsRepository) -> None:
    team = teams_repository.create(DUKE)

    assert teams_repository.exists({"team_id": team.team_id}) is True
    assert teams_repository.exists({"name": "Duke", "gender": "men"}) is True
    assert teams_repository.delete(team.team_id) is True
    assert teams_repository.exists({"team_id": team.team_id}) is False


def test_conference_lifecycle(conferences_repository: ConferencesRepository) -> None:
    acc = conferences_repository.create(
        {"name": "Atlantic Coast Conference", "short_name": "ACC", "sport": "soccer", "division": "d1", "gender": "women"}
    )
    conferences_repository.create({"name": "Ivy League", "sport": "soccer", "division": "d1", "gender": "women"})
    conferences_repository.create(
        {"name": "Big Sky", "sport": "soccer", "division": "d2", "gender": "women", "level": "club"}
    )

    assert acc.conference_id == "soccer-d1-women-atlantic-coast-conference"
    assert acc.level == "college"

    page = conferences_repository.find_all({"level": "college"}, {"sort_by": "name", "sort_order": "DESC"})
    assert [conference.name for conference in page.items] == ["Ivy League", "Atlantic Coast Conference"]

    updated = conferences_repository.update(acc.conference_id, {"region": "East"})
    assert updated.region == "East"
    assert conferences_repository.find_or_create(
        {"name": "Ivy League", "sport": "soccer", "division": "d1", "gender": "women"}
    ).name == "Ivy League"
    assert conferences_repository.count() == 3


def test_find_all_clamps_prebuilt_pagination(sqlite_adapter) -> None:
    teams = TeamsRepository(sqlite_adapter, limits=PaginationLimits(default_limit=2, max_limit=2, max_offset=1))
    for name in ("Duke", "Virginia", "Clemson"):
        teams.create({**DUKE, "name": name})

    page = teams.find_all({}, PaginationSpec(limit=500, offset=50, sort_field="name", sort_direction=SortDirection.ASC))

    assert page.pagination.limit == 2
    assert page.pagination.offset == 1
    assert [team.name for team in page.items] == ["Duke", "Virginia"]
