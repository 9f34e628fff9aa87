"""Tests for the storage contract, run against every backend."""

import pytest

from database import Database
from errors import NotFound, NothingToUndo, ValidationError
from leaderboard import calculate_game_leaderboard
from models import GameUpdate, NewGameInput
from repository import MemoryScoreRepository, create_repository
from config import Config
from conftest import GROUP_ID, manual_team


def game_between(first, second, first_points=180, second_points=120, **kwargs):
    return NewGameInput(
        teams=[manual_team(first.id, first_points), manual_team(second.id, second_points)],
        **kwargs,
    )


class TestGroups:
    @pytest.mark.asyncio
    async def test_ensure_group_is_idempotent(self, repository):
        first = await repository.ensure_group("guild-1", "Thursday Club")
        again = await repository.ensure_group("guild-1", "Another Name")

        assert again == first
        assert again.name == "Thursday Club"

    @pytest.mark.asyncio
    async def test_create_and_rename_group(self, repository):
        group = await repository.create_group("  Friday <b>Night</b> ")

        renamed = await repository.rename_group(group.id, "Saturday")

        assert group.name == "Friday Night"
        assert group.id.startswith("group-")
        assert renamed.name == "Saturday"
        assert [g.name for g in await repository.list_groups()] == ["Saturday"]

    @pytest.mark.asyncio
    async def test_rename_missing_group_raises(self, repository):
        with pytest.raises(NotFound):
            await repository.rename_group("group-nope", "Name")

    @pytest.mark.asyncio
    async def test_blank_group_name_is_rejected(self, repository):
        with pytest.raises(ValidationError):
            await repository.create_group("<script>x</script>")

    @pytest.mark.asyncio
    async def test_delete_group_drops_its_games(self, seeded):
        repository, first, second = seeded
        await repository.add_game_record(GROUP_ID, game_between(first, second))

        await repository.delete_group(GROUP_ID)

        assert await repository.list_game_records(GROUP_ID) == []
        assert await repository.list_pairs(GROUP_ID) == []


class TestPlayers:
    @pytest.mark.asyncio
    async def test_names_are_sanitized(self, repository):
        player = await repository.create_player("  Ana<script>alert(1)</script>! ")

        assert player.name == "Ana"

    @pytest.mark.asyncio
    async def test_rename_and_delete(self, repository):
        player = await repository.create_player("Ana")

        renamed = await repository.rename_player(player.id, "Ana Maria")
        assert renamed.name == "Ana Maria"

        await repository.delete_player(player.id)
        assert await repository.list_players() == []

    @pytest.mark.asyncio
    async def test_missing_player_raises(self, repository):
        with pytest.raises(NotFound):
            await repository.rename_player("player-nope", "Name")
        with pytest.raises(NotFound):
            await repository.delete_player("player-nope")

    @pytest.mark.asyncio
    async def test_overlong_name_is_rejected(self, repository):
        with pytest.raises(ValidationError):
            await repository.create_player("a" * 101)


class TestPairs:
    @pytest.mark.asyncio
    async def test_pairs_are_scoped_to_group(self, seeded):
        repository, first, second = seeded

        assert await repository.list_pairs(GROUP_ID) == [first, second]
        assert await repository.list_pairs("other-group") == []

    @pytest.mark.asyncio
    async def test_same_player_twice_is_rejected(self, repository):
        ana = await repository.create_player("Ana")

        with pytest.raises(ValidationError):
            await repository.create_pair(GROUP_ID, (ana.id, ana.id))

    @pytest.mark.asyncio
    async def test_unknown_player_is_rejected(self, repository):
        ana = await repository.create_player("Ana")

        with pytest.raises(NotFound):
            await repository.create_pair(GROUP_ID, (ana.id, "player-nope"))
        assert await repository.list_pairs(GROUP_ID) == []

    @pytest.mark.asyncio
    async def test_wrong_member_count_is_rejected(self, repository):
        with pytest.raises(ValidationError):
            await repository.create_pair(GROUP_ID, ("a", "b", "c"))


class TestGameRecords:
    @pytest.mark.asyncio
    async def test_add_stores_record_with_create_entry(self, seeded):
        repository, first, second = seeded

        record = await repository.add_game_record(GROUP_ID, game_between(first, second, notes="close one"))

        assert len(record.audit_trail) == 1
        assert record.audit_trail.peek().type == "create"
        assert sum(score.points for score in record.scores) == 300
        assert await repository.get_game_record(GROUP_ID, record.id) == record
        assert [g.id for g in await repository.list_game_records(GROUP_ID)] == [record.id]

    @pytest.mark.asyncio
    async def test_overlapping_pairs_persist_nothing(self, seeded):
        repository, first, _ = seeded
        ana, bruno = first.players
        carla = await repository.create_player("Carla Two")
        overlapping = await repository.create_pair(GROUP_ID, (ana, carla.id))

        with pytest.raises(ValidationError):
            await repository.add_game_record(GROUP_ID, game_between(first, overlapping))

        assert await repository.list_game_records(GROUP_ID) == []

    @pytest.mark.asyncio
    async def test_pairs_from_another_group_are_unknown(self, seeded):
        repository, first, second = seeded

        with pytest.raises(ValidationError):
            await repository.add_game_record("other-group", game_between(first, second))

    @pytest.mark.asyncio
    async def test_notes_are_sanitized(self, seeded):
        repository, first, second = seeded

        record = await repository.add_game_record(
            GROUP_ID,
            game_between(first, second, notes='<b onclick="x">close</b><script>bad()</script>'),
        )
        updated = await repository.update_game_record(
            GROUP_ID, record.id, GameUpdate(notes="<i>fixed</i><img src=x>")
        )

        assert record.notes == "<b>close</b>"
        assert updated.notes == "<i>fixed</i>"

    @pytest.mark.asyncio
    async def test_update_appends_entry_and_persists(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))

        await repository.update_game_record(GROUP_ID, record.id, GameUpdate(notes="edited"))
        stored = await repository.get_game_record(GROUP_ID, record.id)

        assert stored.notes == "edited"
        assert [entry.type for entry in stored.audit_trail] == ["create", "update"]

    @pytest.mark.asyncio
    async def test_undo_restores_then_runs_out(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))
        await repository.update_game_record(
            GROUP_ID,
            record.id,
            GameUpdate(teams=[manual_team(first.id, 0), manual_team(second.id, 500)]),
        )

        restored = await repository.undo_last_change(GROUP_ID, record.id)

        assert [team.total_points for team in restored.teams] == [180, 120]
        assert restored.scores == record.scores
        assert (await repository.get_game_record(GROUP_ID, record.id)).teams == record.teams

        fresh = await repository.add_game_record(GROUP_ID, game_between(first, second))
        with pytest.raises(NothingToUndo):
            await repository.undo_last_change(GROUP_ID, fresh.id)

    @pytest.mark.asyncio
    async def test_unparseable_played_at_is_rejected(self, seeded):
        repository, first, second = seeded

        with pytest.raises(ValidationError):
            await repository.add_game_record(
                GROUP_ID, game_between(first, second, played_at="last tuesday")
            )
        assert await repository.list_game_records(GROUP_ID) == []

        record = await repository.add_game_record(GROUP_ID, game_between(first, second))
        for bad in ("last tuesday", None):
            with pytest.raises(ValidationError):
                await repository.update_game_record(GROUP_ID, record.id, GameUpdate(played_at=bad))

        stored = await repository.get_game_record(GROUP_ID, record.id)
        assert stored == record
        assert len(calculate_game_leaderboard(await repository.list_game_records(GROUP_ID))) == 1

    @pytest.mark.asyncio
    async def test_listed_oldest_first(self, seeded):
        repository, first, second = seeded
        late = await repository.add_game_record(
            GROUP_ID, game_between(first, second, played_at="2024-03-01T19:00:00-03:00")
        )
        early = await repository.add_game_record(
            GROUP_ID, game_between(first, second, played_at="2024-03-01T20:00:00Z")
        )
        same = await repository.add_game_record(
            GROUP_ID, game_between(first, second, played_at="2024-03-01T20:00:00+00:00")
        )

        listed = await repository.list_game_records(GROUP_ID)

        assert [g.id for g in listed] == [early.id, same.id, late.id]

    @pytest.mark.asyncio
    async def test_moving_played_at_reorders_listing(self, seeded):
        repository, first, second = seeded
        older = await repository.add_game_record(
            GROUP_ID, game_between(first, second, played_at="2024-01-01T20:00:00+00:00")
        )
        newer = await repository.add_game_record(
            GROUP_ID, game_between(first, second, played_at="2024-02-01T20:00:00+00:00")
        )

        await repository.update_game_record(
            GROUP_ID, older.id, GameUpdate(played_at="2024-03-01T20:00:00+00:00")
        )

        assert [g.id for g in await repository.list_game_records(GROUP_ID)] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_two_undos_step_back_twice(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))
        await repository.update_game_record(GROUP_ID, record.id, GameUpdate(notes="one"))
        await repository.update_game_record(GROUP_ID, record.id, GameUpdate(notes="two"))

        await repository.undo_last_change(GROUP_ID, record.id)
        restored = await repository.undo_last_change(GROUP_ID, record.id)

        assert restored.notes is None
        assert (await repository.get_game_record(GROUP_ID, record.id)).notes is None
        with pytest.raises(NothingToUndo):
            await repository.undo_last_change(GROUP_ID, record.id)

    @pytest.mark.asyncio
    async def test_failed_undo_leaves_record_unchanged(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))

        with pytest.raises(NothingToUndo):
            await repository.undo_last_change(GROUP_ID, record.id)

        assert await repository.get_game_record(GROUP_ID, record.id) == record

    @pytest.mark.asyncio
    async def test_missing_game_raises_not_found(self, seeded):
        repository, _, _ = seeded

        with pytest.raises(NotFound):
            await repository.get_game_record(GROUP_ID, "game-nope")
        with pytest.raises(NotFound):
            await repository.update_game_record(GROUP_ID, "game-nope", GameUpdate(notes="x"))
        with pytest.raises(NotFound):
            await repository.undo_last_change(GROUP_ID, "game-nope")
        with pytest.raises(NotFound):
            await repository.delete_game_record(GROUP_ID, "game-nope")

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))

        await repository.delete_game_record(GROUP_ID, record.id)

        assert await repository.list_game_records(GROUP_ID) == []
        with pytest.raises(NotFound):
            await repository.get_game_record(GROUP_ID, record.id)

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, seeded):
        repository, first, second = seeded
        record = await repository.add_game_record(GROUP_ID, game_between(first, second))

        record.notes = "changed locally"
        record.audit_trail.pop()

        stored = await repository.get_game_record(GROUP_ID, record.id)
        assert stored.notes is None
        assert len(stored.audit_trail) == 1


class TestSqlitePersistence:
    @pytest.mark.asyncio
    async def test_records_survive_reconnect(self, tmp_path):
        path = str(tmp_path / "scores.db")
        database = Database(path)
        await database.connect()
        await database.ensure_group(GROUP_ID, "Thursday Club")
        ana = await database.create_player("Ana")
        bruno = await database.create_player("Bruno")
        carla = await database.create_player("Carla")
        diego = await database.create_player("Diego")
        first = await database.create_pair(GROUP_ID, (ana.id, bruno.id))
        second = await database.create_pair(GROUP_ID, (carla.id, diego.id))
        record = await database.add_game_record(GROUP_ID, game_between(first, second))
        await database.update_game_record(GROUP_ID, record.id, GameUpdate(notes="kept"))
        await database.close()

        reopened = Database(path)
        await reopened.connect()
        try:
            stored = await reopened.get_game_record(GROUP_ID, record.id)
        finally:
            await reopened.close()

        assert stored.notes == "kept"
        assert len(stored.audit_trail) == 2
        assert stored.teams == record.teams

    @pytest.mark.asyncio
    async def test_queries_before_connect_fail(self, tmp_path):
        database = Database(str(tmp_path / "scores.db"))

        with pytest.raises(RuntimeError):
            await database.list_players()


class TestCreateRepository:
    def test_memory_backend(self):
        config = Config(discord_token="t", database_path="unused.db", storage_backend="memory")

        assert isinstance(create_repository(config), MemoryScoreRepository)

    def test_sqlite_backend(self, tmp_path):
        config = Config(discord_token="t", database_path=str(tmp_path / "x.db"))

        repository = create_repository(config)

        assert isinstance(repository, Database)
        assert repository.db_path == str(tmp_path / "x.db")

    def test_each_call_builds_a_new_instance(self):
        config = Config(discord_token="t", database_path="unused.db", storage_backend="memory")

        assert create_repository(config) is not create_repository(config)
