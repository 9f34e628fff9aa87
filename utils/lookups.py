"""Resolve what users type in commands into stored players, pairs and games."""

import re
from dataclasses import dataclass, field
from typing import Optional

import discord

from errors import NotFound, NothingToUndo, ScoreError, ValidationError
from game_records import pairs_lookup
from models import GameRecord, Pair, Player
from repository import ScoreRepository
from utils import Colors, log
from utils.helpers import create_error_embed, pair_name

ERROR_TITLES = {
    ValidationError: "Invalid Input",
    NotFound: "Not Found",
    NothingToUndo: "Nothing to Undo",
}


@dataclass
class GroupContext:
    """Players, pairs and games visible from one guild."""

    group_id: str
    players: list[Player] = field(default_factory=list)
    pairs: list[Pair] = field(default_factory=list)
    games: list[GameRecord] = field(default_factory=list)

    @property
    def players_by_id(self) -> dict[str, Player]:
        return {player.id: player for player in self.players}

    @property
    def pairs_by_id(self) -> dict[str, Pair]:
        return pairs_lookup(self.pairs)

    def pair_name(self, pair_id: Optional[str]) -> str:
        return pair_name(self.pairs_by_id, self.players_by_id, pair_id)


async def ensure_guild_group(repository: ScoreRepository, guild: Optional[discord.Guild]) -> str:
    """Group id for a guild, registering the guild on first use."""
    if guild is None:
        raise ValidationError("This command must be used in a server, not DMs.")
    group_id = str(guild.id)
    try:
        await repository.ensure_group(group_id, guild.name)
    except ValidationError:
        # Guild names made only of emoji or symbols sanitize to nothing
        log("LOOKUP", f"Guild name {guild.name!r} rejected, using fallback", Colors.YELLOW)
        await repository.ensure_group(group_id, f"Server {guild.id}")
    return group_id


async def load_group_context(
    repository: ScoreRepository,
    guild: Optional[discord.Guild],
    with_games: bool = False,
) -> GroupContext:
    group_id = await ensure_guild_group(repository, guild)
    context = GroupContext(
        group_id=group_id,
        players=await repository.list_players(),
        pairs=await repository.list_pairs(group_id),
    )
    if with_games:
        context.games = await repository.list_game_records(group_id)
    return context


def _match_id(items, text: str):
    text = text.strip()
    exact = [item for item in items if item.id == text]
    if exact:
        return exact
    return [item for item in items if text and item.id.endswith(text)]


def resolve_player(players: list[Player], text: str) -> Player:
    """Find a player by id, id suffix or case-insensitive name."""
    matches = _match_id(players, text)
    if not matches:
        wanted = text.strip().lower()
        matches = [player for player in players if player.name.lower() == wanted]
    if not matches:
        raise NotFound(f"No player named **{text}**. Add them with /addplayer first.")
    if len(matches) > 1:
        raise ValidationError(f"More than one player matches **{text}**; use their id.")
    return matches[0]


def resolve_pair(context: GroupContext, text: str) -> Pair:
    """Find a pair by id, id suffix, or by its two player names ('Ana & Bruno')."""
    matches = _match_id(context.pairs, text)
    if not matches:
        names = {part.strip().lower() for part in re.split(r"\s*(?:&|,|/|\band\b)\s*", text) if part.strip()}
        players = context.players_by_id
        matches = [
            pair for pair in context.pairs
            if {players[p].name.lower() for p in pair.players if p in players} == names
        ]
    if not matches:
        raise NotFound(f"No pair matches **{text}**. Create it with /createpair first.")
    if len(matches) > 1:
        raise ValidationError(f"More than one pair matches **{text}**; use its id.")
    return matches[0]


def resolve_game(games: list[GameRecord], text: str) -> GameRecord:
    """Find a game by id or by the short id shown in /history."""
    matches = _match_id(games, text)
    if not matches:
        raise NotFound(f"No game with id **{text}**. Check /history for ids.")
    if len(matches) > 1:
        raise ValidationError(f"More than one game matches **{text}**; use more characters.")
    return matches[0]


async def report_score_error(
    source: str,
    interaction: discord.Interaction,
    error: discord.app_commands.AppCommandError,
) -> None:
    """Answer a failed command with an error embed; re-raise anything unexpected."""
    original = getattr(error, "original", error)
    if not isinstance(original, ScoreError):
        raise error

    log(source, f"  {type(original).__name__}: {original}", Colors.YELLOW)
    embed = create_error_embed(ERROR_TITLES.get(type(original), "Error"), str(original))
    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=True)
