"""Helper utilities for the Burako Scorekeeper Bot."""

import re
from datetime import datetime
from typing import Mapping, Optional

import discord

from config import EMBED_COLOR
from errors import ValidationError
from models import AuditEntry, CardCountBreakdown, GameRecord, Pair, Player

UNKNOWN = "Unknown"


def player_name(players_by_id: Mapping[str, Player], player_id: str) -> str:
    """Display name for a player id; missing players show as Unknown."""
    player = players_by_id.get(player_id)
    return player.name if player else UNKNOWN


def pair_name(
    pairs_by_id: Mapping[str, Pair],
    players_by_id: Mapping[str, Player],
    pair_id: Optional[str],
) -> str:
    """'Ana & Bruno' for a pair id; missing pairs show as Unknown."""
    pair = pairs_by_id.get(pair_id) if pair_id else None
    if pair is None:
        return UNKNOWN
    return " & ".join(player_name(players_by_id, player_id) for player_id in pair.players)


def parse_canastas(text: Optional[str]) -> tuple[int, int]:
    """
    Parse a canasta count given as ``clean/dirty``.

    Supports:
    - ``2/1`` (two clean, one dirty)
    - ``2`` (two clean, no dirty)
    - empty input (none)
    """
    if not text or not text.strip():
        return 0, 0
    match = re.fullmatch(r"\s*(\d+)\s*(?:/\s*(\d+)\s*)?", text)
    if not match:
        raise ValidationError(f"Canastas must look like clean/dirty, e.g. 2/1 (got {text!r})")
    return int(match.group(1)), int(match.group(2) or 0)


def parse_card_counts(text: Optional[str]) -> CardCountBreakdown:
    """
    Parse the cards left in hand as five counts.

    Order is jokers, twos, aces, 3-7, 8-K, separated by spaces or commas:
    ``1 0 2 3 4``. Missing trailing counts are zero.
    """
    if not text or not text.strip():
        return CardCountBreakdown()
    parts = [part for part in re.split(r"[\s,]+", text.strip()) if part]
    if len(parts) > 5 or not all(part.isdigit() for part in parts):
        raise ValidationError(
            "Card counts must be up to five whole numbers: jokers twos aces 3-7 8-K"
        )
    counts = [int(part) for part in parts] + [0] * (5 - len(parts))
    return CardCountBreakdown(
        jokers=counts[0],
        twos=counts[1],
        aces=counts[2],
        three_to_seven=counts[3],
        eight_to_king=counts[4],
    )


def short_id(entity_id: str) -> str:
    """Last 6 characters of an id, enough to type back into a command."""
    return entity_id[-6:]


def format_played_at(played_at: Optional[str]) -> str:
    """Format an ISO timestamp as a date for display."""
    if not played_at:
        return "N/A"
    try:
        return datetime.fromisoformat(played_at.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return played_at


def format_average(average_points: float) -> str:
    """Format average points with two decimals."""
    return f"{average_points:.2f}"


def create_error_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized error embed."""
    return discord.Embed(
        title=f"Error: {title}",
        description=description,
        color=discord.Color.red()
    )


def create_success_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized success embed."""
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.green()
    )


def create_info_embed(title: str, description: str = "") -> discord.Embed:
    """Create a standardized info embed."""
    return discord.Embed(
        title=title,
        description=description,
        color=EMBED_COLOR
    )


def truncate_string(text: str, max_length: int = 100) -> str:
    """Truncate string with ellipsis if too long."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def format_leaderboard_row(
    rank: int,
    name: str,
    points: int,
    games: int,
    average_points: float
) -> str:
    """Format a single leaderboard row."""
    rank_str = f"{rank}."
    return f"`{rank_str:3}` **{name}** - {points} pts ({games}G, avg {format_average(average_points)})"


def format_game_summary(
    record: GameRecord,
    pairs_by_id: Mapping[str, Pair],
    players_by_id: Mapping[str, Player],
) -> str:
    """Format a game summary for display."""
    lines = [f"**Game `{short_id(record.id)}`** - {format_played_at(record.played_at)}"]
    for team in sorted(record.teams, key=lambda t: t.total_points, reverse=True):
        name = pair_name(pairs_by_id, players_by_id, team.pair_id)
        lines.append(f"  **{name}**: {team.total_points} ({team.scoring.breakdown or 'no points'})")
    if record.starting_pair_id:
        lines.append(f"  Started: {pair_name(pairs_by_id, players_by_id, record.starting_pair_id)}")
    if record.notes:
        lines.append(f"  Notes: {truncate_string(record.notes, 200)}")
    return "\n".join(lines)


def format_audit_entry(entry: AuditEntry) -> str:
    """One line of a game's change history."""
    return f"`{format_played_at(entry.timestamp)}` {entry.type}: {entry.summary}"
