"""Statistics cog for the Burako Scorekeeper Bot."""

import discord
from discord import app_commands
from discord.ext import commands

from leaderboard import (
    calculate_game_leaderboard,
    calculate_leaderboard,
    calculate_pair_leaderboard,
)
from utils import Colors, log
from utils.helpers import (
    create_info_embed,
    format_average,
    format_leaderboard_row,
    format_played_at,
    player_name,
    short_id,
)
from utils.lookups import load_group_context, report_score_error, resolve_player


class Stats(commands.Cog):
    """Cog for viewing standings."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def cog_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError
    ) -> None:
        """Report score errors to the user instead of the console."""
        await report_score_error("STATS", interaction, error)

    @app_commands.command(name="leaderboard", description="View the player standings")
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        """Display players sorted by total points."""
        log("STATS", f"leaderboard command invoked by {interaction.user}", Colors.CYAN)
        context = await load_group_context(self.bot.repository, interaction.guild, with_games=True)
        standings = calculate_leaderboard(context.games)
        log("STATS", f"leaderboard got {len(standings)} players from {len(context.games)} games", Colors.CYAN)

        if not standings:
            await interaction.response.send_message(
                embed=create_info_embed("Leaderboard", "No games have been played yet!")
            )
            return

        players = context.players_by_id
        rows = [
            format_leaderboard_row(
                rank=i,
                name=player_name(players, entry.player_id),
                points=entry.total_points,
                games=entry.games_played,
                average_points=entry.average_points
            )
            for i, entry in enumerate(standings[:15], 1)  # Top 15
        ]
        embed = create_info_embed("Burako Leaderboard", "\n".join(rows))
        embed.set_footer(text="Ties are broken by average points per game")
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="pairleaderboard", description="View the pair standings")
    async def pair_leaderboard(self, interaction: discord.Interaction) -> None:
        """Display pairs sorted by total points."""
        log("STATS", f"pairleaderboard command invoked by {interaction.user}", Colors.CYAN)
        context = await load_group_context(self.bot.repository, interaction.guild, with_games=True)
        standings = calculate_pair_leaderboard(context.games)

        if not standings:
            await interaction.response.send_message(
                embed=create_info_embed("Pair Leaderboard", "No games have been played yet!")
            )
            return

        rows = [
            format_leaderboard_row(
                rank=i,
                name=context.pair_name(entry.pair_id),
                points=entry.total_points,
                games=entry.games_played,
                average_points=entry.average_points
            )
            for i, entry in enumerate(standings[:15], 1)
        ]
        await interaction.response.send_message(
            embed=create_info_embed("Pair Leaderboard", "\n".join(rows))
        )

    @app_commands.command(name="bestwins", description="View the biggest winning margins")
    async def best_wins(self, interaction: discord.Interaction) -> None:
        """Display decisive games by margin."""
        log("STATS", f"bestwins command invoked by {interaction.user}", Colors.CYAN)
        context = await load_group_context(self.bot.repository, interaction.guild, with_games=True)
        wins = calculate_game_leaderboard(context.games)

        if not wins:
            await interaction.response.send_message(
                embed=create_info_embed("Best Wins", "No decisive games yet!")
            )
            return

        rows = [
            f"`{i}.` **Game #{entry.game_number}** ({format_played_at(entry.played_at)}) - "
            f"**{context.pair_name(entry.winning_pair_id)}** {entry.winning_points} vs "
            f"{context.pair_name(entry.losing_pair_id)} {entry.losing_points} "
            f"(+{entry.margin})"
            for i, entry in enumerate(wins[:10], 1)
        ]
        await interaction.response.send_message(
            embed=create_info_embed("Best Wins", "\n".join(rows))
        )

    @app_commands.command(name="stats", description="View a player's standing")
    @app_commands.describe(player="Name or id of the player")
    async def stats(self, interaction: discord.Interaction, player: str) -> None:
        """Display one player's totals in this server."""
        log("STATS", f"stats '{player}' invoked by {interaction.user}", Colors.CYAN)
        context = await load_group_context(self.bot.repository, interaction.guild, with_games=True)
        target = resolve_player(context.players, player)

        standings = calculate_leaderboard(context.games)
        for rank, entry in enumerate(standings, 1):
            if entry.player_id == target.id:
                break
        else:
            await interaction.response.send_message(
                embed=create_info_embed(f"Stats for {target.name}", f"{target.name} hasn't played any games yet!")
            )
            return

        embed = create_info_embed(f"Stats for {target.name}")
        embed.add_field(
            name="Overview",
            value=(
                f"**Rank:** {rank} of {len(standings)}\n"
                f"**Total Points:** {entry.total_points}\n"
                f"**Games:** {entry.games_played}\n"
                f"**Average:** {format_average(entry.average_points)}\n"
                f"**Last Played:** {format_played_at(entry.last_played_at)}"
            ),
            inline=True
        )
        embed.set_footer(text=f"Player id {short_id(target.id)}")
        await interaction.response.send_message(embed=embed)


async def setup(bot: commands.Bot) -> None:
    """Set up the stats cog."""
    await bot.add_cog(Stats(bot))
