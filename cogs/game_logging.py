"""Game logging cog for the Burako Scorekeeper Bot."""

from typing import Optional

import discord
from discord import app_commands, ui
from discord.ext import commands

from errors import ValidationError
from models import GameUpdate, NewGameInput, TeamResult
from repository import ScoreRepository
from scoring import (
    CardsScoreInput,
    SummaryScoreInput,
    build_cards_detail,
    build_manual_detail,
    build_summary_detail,
    build_team_result,
    derive_player_scores,
)
from utils import Colors, log
from utils.helpers import (
    create_info_embed,
    create_success_embed,
    format_audit_entry,
    format_game_summary,
    parse_canastas,
    parse_card_counts,
    short_id,
)
from utils.lookups import (
    GroupContext,
    load_group_context,
    report_score_error,
    resolve_game,
    resolve_pair,
)

TEAM_CHOICES = [
    app_commands.Choice(name="Team A", value="a"),
    app_commands.Choice(name="Team B", value="b"),
]


def _pick_team(choice: Optional[app_commands.Choice[str]], pair_a_id: str, pair_b_id: str) -> Optional[str]:
    if choice is None:
        return None
    return pair_a_id if choice.value == "a" else pair_b_id


def _parse_minus(text: Optional[str]) -> tuple[int, int]:
    """Minus points for both teams as ``a/b``; a single number applies to team A."""
    try:
        return parse_canastas(text)
    except ValidationError:
        raise ValidationError(f"Minus points must look like 20/0 (got {text!r})") from None


async def _announce_game(interaction: discord.Interaction, context: GroupContext, record) -> None:
    embed = create_success_embed(
        f"Game `{short_id(record.id)}` Logged!",
        format_game_summary(record, context.pairs_by_id, context.players_by_id)
    )
    view = LoggedGameView(context.group_id, record.id)
    await interaction.response.send_message(embed=embed, view=view)


async def _record_game(
    interaction: discord.Interaction,
    context: GroupContext,
    teams: list[TeamResult],
    notes: Optional[str],
    starting_pair_id: Optional[str],
) -> None:
    repository: ScoreRepository = interaction.client.repository
    record = await repository.add_game_record(
        context.group_id,
        NewGameInput(teams=teams, notes=notes, starting_pair_id=starting_pair_id)
    )
    log("GAME_LOG", f"  Recorded game {record.id}: {[t.total_points for t in record.teams]}", Colors.GREEN)
    await _announce_game(interaction, context, record)


class DetailedGameModal(ui.Modal):
    """Modal for the per-team details of a summary or cards mode game."""

    def __init__(
        self,
        mode: str,
        context: GroupContext,
        pair_a_id: str,
        pair_b_id: str,
        winner_pair_id: Optional[str],
        muerto_a: bool,
        muerto_b: bool,
        notes: Optional[str],
        starting_pair_id: Optional[str],
    ):
        super().__init__(title=f"Log Game ({mode})")
        self.mode = mode
        self.context = context
        self.pair_a_id = pair_a_id
        self.pair_b_id = pair_b_id
        self.winner_pair_id = winner_pair_id
        self.muerto = {pair_a_id: muerto_a, pair_b_id: muerto_b}
        self.notes = notes
        self.starting_pair_id = starting_pair_id

        name_a = context.pair_name(pair_a_id)
        name_b = context.pair_name(pair_b_id)
        if mode == "cards":
            hand_label = "cards left (jokers twos aces 3-7 8-K)"
            hand_placeholder = "0 1 2 3 4"
        else:
            hand_label = "card points"
            hand_placeholder = "120"

        self.hand_a = ui.TextInput(
            label=f"{name_a}: {hand_label}"[:45],
            placeholder=hand_placeholder,
            style=discord.TextStyle.short,
            required=False
        )
        self.canastas_a = ui.TextInput(
            label=f"{name_a}: canastas (clean/dirty)"[:45],
            placeholder="2/1",
            style=discord.TextStyle.short,
            required=False
        )
        self.hand_b = ui.TextInput(
            label=f"{name_b}: {hand_label}"[:45],
            placeholder=hand_placeholder,
            style=discord.TextStyle.short,
            required=False
        )
        self.canastas_b = ui.TextInput(
            label=f"{name_b}: canastas (clean/dirty)"[:45],
            placeholder="1/0",
            style=discord.TextStyle.short,
            required=False
        )
        self.minus = ui.TextInput(
            label="Minus points (team A/team B)",
            placeholder="0/20",
            style=discord.TextStyle.short,
            required=False
        )

        self.add_item(self.hand_a)
        self.add_item(self.canastas_a)
        self.add_item(self.hand_b)
        self.add_item(self.canastas_b)
        self.add_item(self.minus)

    def _team(self, pair_id: str, hand: str, canastas: str, minus_points: int) -> TeamResult:
        clean, dirty = parse_canastas(canastas)
        flags = {
            "clean_canastas": clean,
            "dirty_canastas": dirty,
            "minus_points": minus_points,
            "took_muerto": self.muerto[pair_id],
            "winner": self.winner_pair_id == pair_id,
        }
        if self.mode == "cards":
            total, detail = build_cards_detail(
                CardsScoreInput(card_counts=parse_card_counts(hand), **flags)
            )
        else:
            hand = (hand or "").strip()
            if hand and not hand.lstrip("-").isdigit():
                raise ValidationError(f"Card points must be a whole number (got {hand!r})")
            total, detail = build_summary_detail(
                SummaryScoreInput(card_points=int(hand or 0), **flags)
            )
        return build_team_result(pair_id, total, detail)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        """Score both teams and record the game."""
        log("GAME_LOG", f"{self.mode} modal submitted by {interaction.user}", Colors.MAGENTA)
        log("GAME_LOG", f"  team A: '{self.hand_a.value}' canastas '{self.canastas_a.value}'", Colors.MAGENTA)
        log("GAME_LOG", f"  team B: '{self.hand_b.value}' canastas '{self.canastas_b.value}'", Colors.MAGENTA)
        log("GAME_LOG", f"  minus: '{self.minus.value}'", Colors.MAGENTA)

        minus_a, minus_b = _parse_minus(self.minus.value)
        teams = [
            self._team(self.pair_a_id, self.hand_a.value, self.canastas_a.value, minus_a),
            self._team(self.pair_b_id, self.hand_b.value, self.canastas_b.value, minus_b),
        ]
        await _record_game(interaction, self.context, teams, self.notes, self.starting_pair_id)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await report_score_error("GAME_LOG", interaction, error)


class EditedGameView(ui.View):
    """Offers a one-click undo after a game was edited."""

    def __init__(self, group_id: str, game_id: str):
        super().__init__(timeout=300)
        self.group_id = group_id
        self.game_id = game_id

    @ui.button(label="Undo", style=discord.ButtonStyle.secondary)
    async def undo(self, interaction: discord.Interaction, button: ui.Button) -> None:
        """Revert the edit."""
        record = await interaction.client.repository.undo_last_change(self.group_id, self.game_id)
        log("GAME_LOG", f"Undo button used on {record.id} by {interaction.user}", Colors.MAGENTA)
        await interaction.response.edit_message(
            content=f"Edit undone for game `{short_id(record.id)}`.",
            view=None
        )

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: ui.Item) -> None:
        await report_score_error("GAME_LOG", interaction, error)


class LoggedGameView(ui.View):
    """Lets the person who logged a game take it back."""

    def __init__(self, group_id: str, game_id: str):
        super().__init__(timeout=300)
        self.group_id = group_id
        self.game_id = game_id

    @ui.button(label="Delete", style=discord.ButtonStyle.danger)
    async def delete(self, interaction: discord.Interaction, button: ui.Button) -> None:
        """Delete the game that was just logged."""
        await interaction.client.repository.delete_game_record(self.group_id, self.game_id)
        log("GAME_LOG", f"Delete button used on {self.game_id} by {interaction.user}", Colors.YELLOW)
        await interaction.response.edit_message(
            content=f"Game `{short_id(self.game_id)}` deleted.",
            embed=None,
            view=None
        )

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: ui.Item) -> None:
        await report_score_error("GAME_LOG", interaction, error)


class GameLogging(commands.Cog):
    """Cog for logging and correcting games."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def repository(self) -> ScoreRepository:
        return self.bot.repository

    async def cog_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError
    ) -> None:
        """Report score errors to the user instead of the console."""
        await report_score_error("GAME_LOG", interaction, error)

    async def pair_autocomplete(
        self,
        interaction: discord.Interaction,
        current: str
    ) -> list[app_commands.Choice[str]]:
        context = await load_group_context(self.repository, interaction.guild)
        current = current.lower()
        return [
            app_commands.Choice(name=context.pair_name(pair.id)[:100], value=pair.id)
            for pair in context.pairs
            if current in context.pair_name(pair.id).lower()
        ][:25]

    async def game_autocomplete(
        self,
        interaction: discord.Interaction,
        current: str
    ) -> list[app_commands.Choice[str]]:
        context = await load_group_context(self.repository, interaction.guild, with_games=True)
        choices = []
        for record in reversed(context.games):
            teams = " vs ".join(
                f"{context.pair_name(team.pair_id)} {team.total_points}" for team in record.teams
            )
            label = f"{short_id(record.id)} {record.played_at[:10]} {teams}"[:100]
            if current.lower() in label.lower():
                choices.append(app_commands.Choice(name=label, value=record.id))
        return choices[:25]

    @app_commands.command(name="log", description="Log a game from each team's final total")
    @app_commands.describe(
        pair_a="First pair",
        total_a="First pair's final total",
        pair_b="Second pair",
        total_b="Second pair's final total",
        notes="Anything worth remembering",
        started="Which team started"
    )
    @app_commands.choices(started=TEAM_CHOICES)
    async def log_game(
        self,
        interaction: discord.Interaction,
        pair_a: str,
        total_a: int,
        pair_b: str,
        total_b: int,
        notes: Optional[str] = None,
        started: Optional[app_commands.Choice[str]] = None
    ) -> None:
        """Record a game with hand-entered totals."""
        log("GAME_LOG", f"log invoked by {interaction.user}: {pair_a}={total_a} {pair_b}={total_b}", Colors.MAGENTA)
        context = await load_group_context(self.repository, interaction.guild)
        first = resolve_pair(context, pair_a)
        second = resolve_pair(context, pair_b)

        teams = []
        for pair, total in ((first, total_a), (second, total_b)):
            points, detail = build_manual_detail(total)
            teams.append(build_team_result(pair.id, points, detail))

        await _record_game(
            interaction, context, teams, notes, _pick_team(started, first.id, second.id)
        )

    async def _open_detailed_modal(
        self,
        mode: str,
        interaction: discord.Interaction,
        pair_a: str,
        pair_b: str,
        winner: Optional[app_commands.Choice[str]],
        muerto_a: bool,
        muerto_b: bool,
        notes: Optional[str],
        started: Optional[app_commands.Choice[str]],
    ) -> None:
        context = await load_group_context(self.repository, interaction.guild)
        first = resolve_pair(context, pair_a)
        second = resolve_pair(context, pair_b)
        if first.id == second.id:
            raise ValidationError("Pick two different pairs.")

        modal = DetailedGameModal(
            mode=mode,
            context=context,
            pair_a_id=first.id,
            pair_b_id=second.id,
            winner_pair_id=_pick_team(winner, first.id, second.id),
            muerto_a=muerto_a,
            muerto_b=muerto_b,
            notes=notes,
            starting_pair_id=_pick_team(started, first.id, second.id),
        )
        await interaction.response.send_modal(modal)

    @app_commands.command(name="logsummary", description="Log a game from card points and canastas")
    @app_commands.describe(
        pair_a="First pair",
        pair_b="Second pair",
        winner="Which team went out first",
        muerto_a="Did the first pair take the muerto?",
        muerto_b="Did the second pair take the muerto?",
        notes="Anything worth remembering",
        started="Which team started"
    )
    @app_commands.choices(winner=TEAM_CHOICES, started=TEAM_CHOICES)
    async def log_summary(
        self,
        interaction: discord.Interaction,
        pair_a: str,
        pair_b: str,
        winner: Optional[app_commands.Choice[str]] = None,
        muerto_a: bool = True,
        muerto_b: bool = True,
        notes: Optional[str] = None,
        started: Optional[app_commands.Choice[str]] = None
    ) -> None:
        """Open the summary-mode form."""
        log("GAME_LOG", f"logsummary invoked by {interaction.user}", Colors.MAGENTA)
        await self._open_detailed_modal(
            "summary", interaction, pair_a, pair_b, winner, muerto_a, muerto_b, notes, started
        )

    @app_commands.command(name="logcards", description="Log a game from the cards left in hand")
    @app_commands.describe(
        pair_a="First pair",
        pair_b="Second pair",
        winner="Which team went out first",
        muerto_a="Did the first pair take the muerto?",
        muerto_b="Did the second pair take the muerto?",
        notes="Anything worth remembering",
        started="Which team started"
    )
    @app_commands.choices(winner=TEAM_CHOICES, started=TEAM_CHOICES)
    async def log_cards(
        self,
        interaction: discord.Interaction,
        pair_a: str,
        pair_b: str,
        winner: Optional[app_commands.Choice[str]] = None,
        muerto_a: bool = True,
        muerto_b: bool = True,
        notes: Optional[str] = None,
        started: Optional[app_commands.Choice[str]] = None
    ) -> None:
        """Open the cards-mode form."""
        log("GAME_LOG", f"logcards invoked by {interaction.user}", Colors.MAGENTA)
        await self._open_detailed_modal(
            "cards", interaction, pair_a, pair_b, winner, muerto_a, muerto_b, notes, started
        )

    @app_commands.command(name="editgame", description="Change a game's totals or notes")
    @app_commands.describe(
        game="Game id from /history",
        total_a="New final total for the game's first team",
        total_b="New final total for the game's second team",
        notes="Replace the notes",
        clear_notes="Remove the notes"
    )
    async def edit_game(
        self,
        interaction: discord.Interaction,
        game: str,
        total_a: Optional[int] = None,
        total_b: Optional[int] = None,
        notes: Optional[str] = None,
        clear_notes: bool = False
    ) -> None:
        """Update a game. Changed totals are stored as manual scores."""
        log("GAME_LOG", f"editgame {game} invoked by {interaction.user}", Colors.MAGENTA)
        context = await load_group_context(self.repository, interaction.guild, with_games=True)
        record = resolve_game(context.games, game)

        update = GameUpdate()
        if total_a is not None or total_b is not None:
            teams = []
            for team, new_total in zip(record.teams, (total_a, total_b)):
                if new_total is None:
                    teams.append(team)
                    continue
                points, detail = build_manual_detail(new_total)
                teams.append(build_team_result(team.pair_id, points, detail))
            update.teams = teams
            update.scores = derive_player_scores(teams, context.pairs_by_id)
        if clear_notes:
            update.notes = None
        elif notes is not None:
            update.notes = notes

        if not any(update.is_set(name) for name in ("teams", "notes")):
            raise ValidationError("Nothing to change. Give new totals or notes.")

        updated = await self.repository.update_game_record(context.group_id, record.id, update)
        embed = create_success_embed(
            f"Game `{short_id(updated.id)}` Updated",
            format_game_summary(updated, context.pairs_by_id, context.players_by_id)
        )
        await interaction.response.send_message(
            embed=embed,
            view=EditedGameView(context.group_id, updated.id)
        )

    @app_commands.command(name="undo", description="Revert the last change to a game")
    @app_commands.describe(game="Game id from /history")
    async def undo(self, interaction: discord.Interaction, game: str) -> None:
        """Step a game back one change."""
        log("GAME_LOG", f"undo {game} invoked by {interaction.user}", Colors.MAGENTA)
        context = await load_group_context(self.repository, interaction.guild, with_games=True)
        record = resolve_game(context.games, game)

        restored = await self.repository.undo_last_change(context.group_id, record.id)
        await interaction.response.send_message(
            embed=create_success_embed(
                "Undo Applied",
                format_game_summary(restored, context.pairs_by_id, context.players_by_id)
            )
        )

    @app_commands.command(name="deletegame", description="Delete a game")
    @app_commands.describe(game="Game id from /history")
    async def delete_game(self, interaction: discord.Interaction, game: str) -> None:
        """Delete a game and its history."""
        log("GAME_LOG", f"deletegame {game} invoked by {interaction.user}", Colors.YELLOW)
        context = await load_group_context(self.repository, interaction.guild, with_games=True)
        record = resolve_game(context.games, game)

        await self.repository.delete_game_record(context.group_id, record.id)
        await interaction.response.send_message(
            embed=create_success_embed("Game Deleted", f"Game `{short_id(record.id)}` was deleted.")
        )

    @app_commands.command(name="history", description="View recent games")
    @app_commands.describe(count="Number of games to show (default 5, max 10)")
    async def history(self, interaction: discord.Interaction, count: int = 5) -> None:
        """Display the most recent games."""
        count = max(1, min(count, 10))
        context = await load_group_context(self.repository, interaction.guild, with_games=True)

        if not context.games:
            await interaction.response.send_message(
                embed=create_info_embed("Recent Games", "No games have been played yet!")
            )
            return

        recent = list(reversed(context.games))[:count]
        summaries = [
            format_game_summary(record, context.pairs_by_id, context.players_by_id)
            for record in recent
        ]
        await interaction.response.send_message(
            embed=create_info_embed(f"Last {len(recent)} Game(s)", "\n\n".join(summaries))
        )

    @app_commands.command(name="changes", description="View a game's change history")
    @app_commands.describe(game="Game id from /history")
    async def changes(self, interaction: discord.Interaction, game: str) -> None:
        """Display a game's audit trail."""
        context = await load_group_context(self.repository, interaction.guild, with_games=True)
        record = resolve_game(context.games, game)
        lines = [format_audit_entry(entry) for entry in record.audit_trail]
        await interaction.response.send_message(
            embed=create_info_embed(f"Changes to Game `{short_id(record.id)}`", "\n".join(lines[-20:]))
        )

    log_game.autocomplete("pair_a")(pair_autocomplete)
    log_game.autocomplete("pair_b")(pair_autocomplete)
    log_summary.autocomplete("pair_a")(pair_autocomplete)
    log_summary.autocomplete("pair_b")(pair_autocomplete)
    log_cards.autocomplete("pair_a")(pair_autocomplete)
    log_cards.autocomplete("pair_b")(pair_autocomplete)
    edit_game.autocomplete("game")(game_autocomplete)
    undo.autocomplete("game")(game_autocomplete)
    delete_game.autocomplete("game")(game_autocomplete)
    changes.autocomplete("game")(game_autocomplete)


async def setup(bot: commands.Bot) -> None:
    """Set up the game logging cog."""
    await bot.add_cog(GameLogging(bot))
