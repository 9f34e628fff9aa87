"""Storage contract for scores, plus the in-process store."""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from config import ID_PREFIXES, PLAYERS_PER_PAIR
from errors import NotFound, ValidationError
from game_records import (
    apply_update,
    create_game_record,
    create_id,
    pairs_lookup,
    sort_chronologically,
    undo_last_change,
    utc_now_iso,
)
from models import GameRecord, GameUpdate, Group, NewGameInput, Pair, Player
from utils import Colors, log
from utils.sanitize import clean_group_name, clean_notes, clean_player_name

if TYPE_CHECKING:
    from config import Config


def validate_pair_members(players) -> tuple[str, str]:
    """Two distinct, non-empty player ids."""
    members = tuple(players)
    if len(members) != PLAYERS_PER_PAIR:
        raise ValidationError(f"A pair needs exactly {PLAYERS_PER_PAIR} players", members)
    if not all(isinstance(p, str) and p for p in members):
        raise ValidationError("Pair players must be valid ids", members)
    if members[0] == members[1]:
        raise ValidationError("A pair needs two different players", members)
    return members[0], members[1]


def clean_game_input(game_input: NewGameInput) -> NewGameInput:
    return NewGameInput(
        teams=game_input.teams,
        scores=game_input.scores,
        notes=clean_notes(game_input.notes),
        played_at=game_input.played_at,
        starting_pair_id=game_input.starting_pair_id,
    )


def clean_game_update(update: GameUpdate) -> GameUpdate:
    if update.is_set("notes") and update.notes is not None:
        update = copy.copy(update)
        update.notes = clean_notes(update.notes)
    return update


class ScoreRepository(ABC):
    """Everything the bot needs from storage.

    Games and pairs are scoped to a group; players are global. Game writes
    go through the pure functions in ``game_records`` so every backend
    produces the same audit trail.
    """

    async def connect(self) -> None:
        """Open the underlying storage."""

    async def close(self) -> None:
        """Release the underlying storage."""

    # Group operations
    @abstractmethod
    async def list_groups(self) -> list[Group]: ...

    @abstractmethod
    async def create_group(self, name: str) -> Group: ...

    @abstractmethod
    async def ensure_group(self, group_id: str, name: str) -> Group:
        """Return the group with this id, creating it if needed."""

    @abstractmethod
    async def rename_group(self, group_id: str, name: str) -> Group: ...

    @abstractmethod
    async def delete_group(self, group_id: str) -> None: ...

    # Player operations
    @abstractmethod
    async def list_players(self) -> list[Player]: ...

    @abstractmethod
    async def create_player(self, name: str) -> Player: ...

    @abstractmethod
    async def rename_player(self, player_id: str, name: str) -> Player: ...

    @abstractmethod
    async def delete_player(self, player_id: str) -> None: ...

    # Pair operations
    @abstractmethod
    async def list_pairs(self, group_id: str) -> list[Pair]: ...

    @abstractmethod
    async def create_pair(self, group_id: str, players: tuple[str, str]) -> Pair: ...

    # Game operations
    @abstractmethod
    async def list_game_records(self, group_id: str) -> list[GameRecord]:
        """Games of a group, oldest ``played_at`` first.

        Games played at the same instant are returned in the order they were
        recorded.
        """

    @abstractmethod
    async def get_game_record(self, group_id: str, game_id: str) -> GameRecord: ...

    @abstractmethod
    async def add_game_record(self, group_id: str, game_input: NewGameInput) -> GameRecord: ...

    @abstractmethod
    async def update_game_record(self, group_id: str, game_id: str, update: GameUpdate) -> GameRecord: ...

    @abstractmethod
    async def undo_last_change(self, group_id: str, game_id: str) -> GameRecord: ...

    @abstractmethod
    async def delete_game_record(self, group_id: str, game_id: str) -> None: ...


class _GroupData:
    def __init__(self):
        self.pairs: list[Pair] = []
        self.games: list[GameRecord] = []


class MemoryScoreRepository(ScoreRepository):
    """Keeps everything in process memory.

    Reads and writes copy records so callers never share state with the
    store. A lock serialises writes, which makes every game mutation one
    atomic read-modify-write.
    """

    def __init__(self):
        self._groups: dict[str, Group] = {}
        self._group_data: dict[str, _GroupData] = {}
        self._players: dict[str, Player] = {}
        self._lock = asyncio.Lock()

    def _data(self, group_id: str) -> _GroupData:
        return self._group_data.setdefault(group_id, _GroupData())

    def _find_game(self, group_id: str, game_id: str) -> int:
        for index, game in enumerate(self._data(group_id).games):
            if game.id == game_id:
                return index
        raise NotFound(f"Game {game_id} not found")

    # Group operations
    async def list_groups(self) -> list[Group]:
        return [copy.copy(group) for group in self._groups.values()]

    async def create_group(self, name: str) -> Group:
        group = Group(id=create_id(ID_PREFIXES["group"]), name=clean_group_name(name), created_at=utc_now_iso())
        self._groups[group.id] = group
        self._data(group.id)
        log("REPO", f"Created group {group.name} ({group.id})", Colors.BLUE)
        return copy.copy(group)

    async def ensure_group(self, group_id: str, name: str) -> Group:
        if group_id not in self._groups:
            self._groups[group_id] = Group(id=group_id, name=clean_group_name(name), created_at=utc_now_iso())
            self._data(group_id)
        return copy.copy(self._groups[group_id])

    async def rename_group(self, group_id: str, name: str) -> Group:
        if group_id not in self._groups:
            raise NotFound(f"Group {group_id} not found")
        self._groups[group_id].name = clean_group_name(name)
        return copy.copy(self._groups[group_id])

    async def delete_group(self, group_id: str) -> None:
        self._groups.pop(group_id, None)
        self._group_data.pop(group_id, None)

    # Player operations
    async def list_players(self) -> list[Player]:
        return [copy.copy(player) for player in self._players.values()]

    async def create_player(self, name: str) -> Player:
        player = Player(id=create_id(ID_PREFIXES["player"]), name=clean_player_name(name))
        self._players[player.id] = player
        return copy.copy(player)

    async def rename_player(self, player_id: str, name: str) -> Player:
        if player_id not in self._players:
            raise NotFound(f"Player {player_id} not found")
        self._players[player_id].name = clean_player_name(name)
        return copy.copy(self._players[player_id])

    async def delete_player(self, player_id: str) -> None:
        if self._players.pop(player_id, None) is None:
            raise NotFound(f"Player {player_id} not found")

    # Pair operations
    async def list_pairs(self, group_id: str) -> list[Pair]:
        return list(self._data(group_id).pairs)

    async def create_pair(self, group_id: str, players: tuple[str, str]) -> Pair:
        members = validate_pair_members(players)
        for player_id in members:
            if player_id not in self._players:
                raise NotFound(f"Player {player_id} not found")
        pair = Pair(id=create_id(ID_PREFIXES["pair"]), group_id=group_id, players=members)
        self._data(group_id).pairs.append(pair)
        return pair

    # Game operations
    async def list_game_records(self, group_id: str) -> list[GameRecord]:
        return sort_chronologically(copy.deepcopy(self._data(group_id).games))

    async def get_game_record(self, group_id: str, game_id: str) -> GameRecord:
        data = self._data(group_id)
        return copy.deepcopy(data.games[self._find_game(group_id, game_id)])

    async def add_game_record(self, group_id: str, game_input: NewGameInput) -> GameRecord:
        async with self._lock:
            data = self._data(group_id)
            record = create_game_record(group_id, clean_game_input(game_input), pairs_lookup(data.pairs))
            data.games.append(record)
            log("REPO", f"Recorded game {record.id} in group {group_id}", Colors.BLUE)
            return copy.deepcopy(record)

    async def update_game_record(self, group_id: str, game_id: str, update: GameUpdate) -> GameRecord:
        async with self._lock:
            index = self._find_game(group_id, game_id)
            data = self._data(group_id)
            updated = apply_update(data.games[index], clean_game_update(update))
            data.games[index] = updated
            return copy.deepcopy(updated)

    async def undo_last_change(self, group_id: str, game_id: str) -> GameRecord:
        async with self._lock:
            index = self._find_game(group_id, game_id)
            data = self._data(group_id)
            restored = undo_last_change(data.games[index])
            data.games[index] = restored
            return copy.deepcopy(restored)

    async def delete_game_record(self, group_id: str, game_id: str) -> None:
        async with self._lock:
            index = self._find_game(group_id, game_id)
            del self._data(group_id).games[index]


def create_repository(config: "Config") -> ScoreRepository:
    """Build the storage backend named in the config. Not cached."""
    if config.storage_backend == "memory":
        log("REPO", "Using in-memory storage", Colors.YELLOW)
        return MemoryScoreRepository()

    from database import Database

    log("REPO", f"Using SQLite storage at {config.database_path}", Colors.BLUE)
    return Database(config.database_path)
