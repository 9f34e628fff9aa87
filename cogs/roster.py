"""Player and pair management cog for the Burako Scorekeeper Bot."""

import discord
from discord import app_commands
from discord.ext import commands

from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    short_id,
)
from utils.lookups import load_group_context, report_score_error, resolve_player


class Roster(commands.Cog):
    """Cog for managing players and pairs."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def cog_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError
    ) -> None:
        """Report score errors to the user instead of the console."""
        await report_score_error("ROSTER", interaction, error)

    @app_commands.command(name="addplayer", description="Register a new player")
    @app_commands.describe(name="The player's name")
    async def add_player(self, interaction: discord.Interaction, name: str) -> None:
        """Create a player. Players are shared between servers."""
        log("ROSTER", f"addplayer '{name}' by {interaction.user}", Colors.CYAN)
        player = await self.bot.repository.create_player(name)
        await interaction.response.send_message(
            embed=create_success_embed(
                "Player Added",
                f"**{player.name}** is ready to play (id `{short_id(player.id)}`)."
            )
        )

    @app_commands.command(name="renameplayer", description="Rename a player")
    @app_commands.describe(player="Current name or id", name="New name")
    async def rename_player(self, interaction: discord.Interaction, player: str, name: str) -> None:
        """Change a player's display name."""
        log("ROSTER", f"renameplayer '{player}' -> '{name}'", Colors.CYAN)
        repository = self.bot.repository
        target = resolve_player(await repository.list_players(), player)
        renamed = await repository.rename_player(target.id, name)
        await interaction.response.send_message(
            embed=create_success_embed("Player Renamed", f"**{target.name}** is now **{renamed.name}**.")
        )

    @app_commands.command(name="removeplayer", description="Remove a player")
    @app_commands.describe(player="Name or id of the player to remove")
    async def remove_player(self, interaction: discord.Interaction, player: str) -> None:
        """Delete a player. Their past games show them as Unknown."""
        log("ROSTER", f"removeplayer '{player}'", Colors.CYAN)
        repository = self.bot.repository
        target = resolve_player(await repository.list_players(), player)
        await repository.delete_player(target.id)
        await interaction.response.send_message(
            embed=create_success_embed("Player Removed", f"**{target.name}** was removed.")
        )

    @app_commands.command(name="players", description="List registered players")
    async def list_players(self, interaction: discord.Interaction) -> None:
        """Show every player with a short id."""
        players = await self.bot.repository.list_players()
        if not players:
            await interaction.response.send_message(
                embed=create_info_embed("Players", "No players yet. Add one with /addplayer.")
            )
            return

        lines = [f"`{short_id(p.id)}` **{p.name}**" for p in sorted(players, key=lambda p: p.name.lower())]
        await interaction.response.send_message(
            embed=create_info_embed("Players", "\n".join(lines[:50]))
        )

    @app_commands.command(name="createpair", description="Form a partnership of two players")
    @app_commands.describe(player1="First partner", player2="Second partner")
    async def create_pair(self, interaction: discord.Interaction, player1: str, player2: str) -> None:
        """Create a pair in this server."""
        log("ROSTER", f"createpair '{player1}' + '{player2}' by {interaction.user}", Colors.CYAN)
        repository = self.bot.repository
        context = await load_group_context(repository, interaction.guild)
        first = resolve_player(context.players, player1)
        second = resolve_player(context.players, player2)

        for pair in context.pairs:
            if set(pair.players) == {first.id, second.id}:
                await interaction.response.send_message(
                    embed=create_error_embed(
                        "Pair Exists",
                        f"**{first.name} & {second.name}** already play together "
                        f"(id `{short_id(pair.id)}`)."
                    ),
                    ephemeral=True
                )
                return

        pair = await repository.create_pair(context.group_id, (first.id, second.id))
        await interaction.response.send_message(
            embed=create_success_embed(
                "Pair Created",
                f"**{first.name} & {second.name}** (id `{short_id(pair.id)}`)"
            )
        )

    @app_commands.command(name="pairs", description="List pairs in this server")
    async def list_pairs(self, interaction: discord.Interaction) -> None:
        """Show every pair in this server."""
        context = await load_group_context(self.bot.repository, interaction.guild)
        if not context.pairs:
            await interaction.response.send_message(
                embed=create_info_embed("Pairs", "No pairs yet. Create one with /createpair.")
            )
            return

        lines = [f"`{short_id(pair.id)}` **{context.pair_name(pair.id)}**" for pair in context.pairs]
        await interaction.response.send_message(
            embed=create_info_embed("Pairs", "\n".join(lines[:50]))
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the roster cog."""
    await bot.add_cog(Roster(bot))
