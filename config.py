"""Environment configuration for the Burako Scorekeeper Bot."""

import os
from dataclasses import dataclass

STORAGE_BACKENDS = ("sqlite", "memory")


@dataclass
class Config:
    """Bot configuration loaded from environment variables."""

    discord_token: str
    database_path: str
    storage_backend: str = "sqlite"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        token = os.getenv("DISCORD_TOKEN")
        if not token:
            raise ValueError("DISCORD_TOKEN environment variable is required")

        database_path = os.getenv("DATABASE_PATH", "burako_scores.db")

        storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got {storage_backend!r}"
            )

        return cls(
            discord_token=token,
            database_path=database_path,
            storage_backend=storage_backend,
        )


# Points per card left in hand at round end
CARD_POINT_VALUES = {
    "jokers": 50,
    "twos": 20,
    "aces": 15,
    "three_to_seven": 5,
    "eight_to_king": 10,
}

CLEAN_CANASTA_POINTS = 200
DIRTY_CANASTA_POINTS = 100
WINNER_BONUS_POINTS = 100
MUERTO_BONUS_POINTS = -100  # waived when the team took the muerto

# ID prefixes
ID_PREFIXES = {
    "group": "group",
    "player": "player",
    "pair": "pair",
    "game": "game",
    "audit": "audit",
}

# Input limits
VALIDATION_LIMITS = {
    "group_name_min": 1,
    "group_name_max": 200,
    "player_name_min": 1,
    "player_name_max": 100,
    "notes_max": 1000,
}

PLAYERS_PER_PAIR = 2

# Embed color (green felt)
EMBED_COLOR = 0x2E8B57  # Sea green
