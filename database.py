"""SQLite storage for the Burako Scorekeeper Bot.

Games are kept as JSON documents, one row per game, so a record and its
audit trail are always read and written as a whole.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiosqlite

from config import ID_PREFIXES
from errors import NotFound
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
from repository import ScoreRepository, clean_game_input, clean_game_update, validate_pair_members
from utils import Colors, log
from utils.sanitize import clean_group_name, clean_player_name


class Database(ScoreRepository):
    """Async SQLite database manager."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Establish database connection and initialize schema."""
        # Autocommit mode; multi-statement writes open their own transaction
        self._connection = await aiosqlite.connect(self.db_path, isolation_level=None)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_tables()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the active connection."""
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block as one immediate (write-locking) transaction."""
        async with self._write_lock:
            await self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield self.conn
            except BaseException:
                await self.conn.execute("ROLLBACK")
                raise
            else:
                await self.conn.execute("COMMIT")

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS pairs (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL,
                player1_id TEXT NOT NULL,
                player2_id TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                CHECK (player1_id <> player2_id)
            );

            CREATE TABLE IF NOT EXISTS games (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL,
                played_at TEXT NOT NULL,
                document TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_pairs_group ON pairs(group_id);
            CREATE INDEX IF NOT EXISTS idx_games_group ON games(group_id, played_at);
        """)

    # Group operations
    async def list_groups(self) -> list[Group]:
        async with self.conn.execute("SELECT * FROM groups ORDER BY created_at") as cursor:
            return [
                Group(id=row["id"], name=row["name"], created_at=row["created_at"])
                async for row in cursor
            ]

    async def create_group(self, name: str) -> Group:
        group = Group(id=create_id(ID_PREFIXES["group"]), name=clean_group_name(name), created_at=utc_now_iso())
        async with self._transaction() as conn:
            await conn.execute(
                "INSERT INTO groups (id, name, created_at) VALUES (?, ?, ?)",
                (group.id, group.name, group.created_at)
            )
        log("DB", f"Created group {group.name} ({group.id})", Colors.BLUE)
        return group

    async def _get_group(self, group_id: str) -> Optional[Group]:
        async with self.conn.execute("SELECT * FROM groups WHERE id = ?", (group_id,)) as cursor:
            row = await cursor.fetchone()
            if row:
                return Group(id=row["id"], name=row["name"], created_at=row["created_at"])
        return None

    async def ensure_group(self, group_id: str, name: str) -> Group:
        group = await self._get_group(group_id)
        if group:
            return group

        group = Group(id=group_id, name=clean_group_name(name), created_at=utc_now_iso())
        async with self._transaction() as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO groups (id, name, created_at) VALUES (?, ?, ?)",
                (group.id, group.name, group.created_at)
            )
        log("DB", f"Registered group {group.name} ({group.id})", Colors.BLUE)
        return await self._get_group(group_id)

    async def rename_group(self, group_id: str, name: str) -> Group:
        cleaned = clean_group_name(name)
        async with self._transaction() as conn:
            async with conn.execute(
                "UPDATE groups SET name = ? WHERE id = ?", (cleaned, group_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Group {group_id} not found")
        return await self._get_group(group_id)

    async def delete_group(self, group_id: str) -> None:
        async with self._transaction() as conn:
            await conn.execute("DELETE FROM games WHERE group_id = ?", (group_id,))
            await conn.execute("DELETE FROM pairs WHERE group_id = ?", (group_id,))
            await conn.execute("DELETE FROM groups WHERE id = ?", (group_id,))

    # Player operations
    async def list_players(self) -> list[Player]:
        async with self.conn.execute("SELECT id, name FROM players ORDER BY name") as cursor:
            return [Player(id=row["id"], name=row["name"]) async for row in cursor]

    async def create_player(self, name: str) -> Player:
        player = Player(id=create_id(ID_PREFIXES["player"]), name=clean_player_name(name))
        async with self._transaction() as conn:
            await conn.execute(
                "INSERT INTO players (id, name) VALUES (?, ?)",
                (player.id, player.name)
            )
        log("DB", f"Created player {player.name} ({player.id})", Colors.BLUE)
        return player

    async def rename_player(self, player_id: str, name: str) -> Player:
        cleaned = clean_player_name(name)
        async with self._transaction() as conn:
            async with conn.execute(
                "UPDATE players SET name = ? WHERE id = ?", (cleaned, player_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Player {player_id} not found")
        return Player(id=player_id, name=cleaned)

    async def delete_player(self, player_id: str) -> None:
        async with self._transaction() as conn:
            async with conn.execute("DELETE FROM players WHERE id = ?", (player_id,)) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Player {player_id} not found")

    # Pair operations
    async def list_pairs(self, group_id: str) -> list[Pair]:
        async with self.conn.execute(
            "SELECT * FROM pairs WHERE group_id = ? ORDER BY created_at, rowid",
            (group_id,)
        ) as cursor:
            return [
                Pair(
                    id=row["id"],
                    group_id=row["group_id"],
                    players=(row["player1_id"], row["player2_id"])
                )
                async for row in cursor
            ]

    async def create_pair(self, group_id: str, players: tuple[str, str]) -> Pair:
        members = validate_pair_members(players)
        pair = Pair(id=create_id(ID_PREFIXES["pair"]), group_id=group_id, players=members)
        async with self._transaction() as conn:
            for player_id in members:
                async with conn.execute("SELECT 1 FROM players WHERE id = ?", (player_id,)) as cursor:
                    if await cursor.fetchone() is None:
                        raise NotFound(f"Player {player_id} not found")
            await conn.execute(
                "INSERT INTO pairs (id, group_id, player1_id, player2_id) VALUES (?, ?, ?, ?)",
                (pair.id, group_id, members[0], members[1])
            )
        return pair

    # Game operations
    async def list_game_records(self, group_id: str) -> list[GameRecord]:
        async with self.conn.execute(
            "SELECT document FROM games WHERE group_id = ? ORDER BY rowid",
            (group_id,)
        ) as cursor:
            records = [GameRecord.from_dict(json.loads(row["document"])) async for row in cursor]
        # Offsets differ between games, so compare instants rather than strings
        return sort_chronologically(records)

    async def _load_game(self, conn: aiosqlite.Connection, group_id: str, game_id: str) -> GameRecord:
        async with conn.execute(
            "SELECT document FROM games WHERE group_id = ? AND id = ?",
            (group_id, game_id)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise NotFound(f"Game {game_id} not found")
        return GameRecord.from_dict(json.loads(row["document"]))

    async def _save_game(self, conn: aiosqlite.Connection, record: GameRecord) -> None:
        await conn.execute(
            "UPDATE games SET played_at = ?, document = ? WHERE group_id = ? AND id = ?",
            (record.played_at, json.dumps(record.to_dict()), record.group_id, record.id)
        )

    async def get_game_record(self, group_id: str, game_id: str) -> GameRecord:
        return await self._load_game(self.conn, group_id, game_id)

    async def add_game_record(self, group_id: str, game_input: NewGameInput) -> GameRecord:
        pairs = await self.list_pairs(group_id)
        record = create_game_record(group_id, clean_game_input(game_input), pairs_lookup(pairs))
        async with self._transaction() as conn:
            await conn.execute(
                "INSERT INTO games (id, group_id, played_at, document) VALUES (?, ?, ?, ?)",
                (record.id, group_id, record.played_at, json.dumps(record.to_dict()))
            )
        log("DB", f"Recorded game {record.id} in group {group_id}", Colors.BLUE)
        return record

    async def update_game_record(self, group_id: str, game_id: str, update: GameUpdate) -> GameRecord:
        update = clean_game_update(update)
        async with self._transaction() as conn:
            current = await self._load_game(conn, group_id, game_id)
            updated = apply_update(current, update)
            await self._save_game(conn, updated)
        log("DB", f"Updated game {game_id} ({len(updated.audit_trail)} audit entries)", Colors.BLUE)
        return updated

    async def undo_last_change(self, group_id: str, game_id: str) -> GameRecord:
        async with self._transaction() as conn:
            current = await self._load_game(conn, group_id, game_id)
            restored = undo_last_change(current)
            await self._save_game(conn, restored)
        log("DB", f"Undid last change on game {game_id}", Colors.BLUE)
        return restored

    async def delete_game_record(self, group_id: str, game_id: str) -> None:
        async with self._transaction() as conn:
            async with conn.execute(
                "DELETE FROM games WHERE group_id = ? AND id = ?",
                (group_id, game_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Game {game_id} not found")
        log("DB", f"Deleted game {game_id}", Colors.YELLOW)
