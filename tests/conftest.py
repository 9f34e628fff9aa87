"""Shared fixtures: two disjoint pairs, team builders and both repositories."""

import pytest
import pytest_asyncio

from database import Database
from game_records import create_game_record, pairs_lookup
from models import NewGameInput, Pair
from repository import MemoryScoreRepository
from scoring import build_manual_detail, build_team_result

GROUP_ID = "group-1"


def manual_team(pair_id: str, total: int):
    points, detail = build_manual_detail(total)
    return build_team_result(pair_id, points, detail)


@pytest.fixture
def pair_a() -> Pair:
    return Pair(id="pair-a", group_id=GROUP_ID, players=("p1", "p2"))


@pytest.fixture
def pair_b() -> Pair:
    return Pair(id="pair-b", group_id=GROUP_ID, players=("p3", "p4"))


@pytest.fixture
def pairs_by_id(pair_a, pair_b) -> dict[str, Pair]:
    return pairs_lookup([pair_a, pair_b])


@pytest.fixture
def record(pairs_by_id):
    """A 180 to 120 manual game with notes."""
    return create_game_record(
        GROUP_ID,
        NewGameInput(
            teams=[manual_team("pair-a", 180), manual_team("pair-b", 120)],
            notes="first game",
            played_at="2024-03-01T20:00:00+00:00",
        ),
        pairs_by_id,
        now="2024-03-01T22:00:00+00:00",
    )


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def repository(request, tmp_path):
    if request.param == "memory":
        repo = MemoryScoreRepository()
    else:
        repo = Database(str(tmp_path / "scores.db"))
    await repo.connect()
    yield repo
    await repo.close()


@pytest_asyncio.fixture
async def seeded(repository):
    """Repository with four players and two pairs in GROUP_ID."""
    await repository.ensure_group(GROUP_ID, "Thursday Club")
    ana = await repository.create_player("Ana")
    bruno = await repository.create_player("Bruno")
    carla = await repository.create_player("Carla")
    diego = await repository.create_player("Diego")
    first = await repository.create_pair(GROUP_ID, (ana.id, bruno.id))
    second = await repository.create_pair(GROUP_ID, (carla.id, diego.id))
    return repository, first, second
