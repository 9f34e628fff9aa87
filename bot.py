"""Main bot entry point for the Burako Scorekeeper."""

import asyncio
import logging
from dotenv import load_dotenv
load_dotenv()

import discord
from discord import app_commands
from discord.ext import commands

from config import Config, EMBED_COLOR
from repository import ScoreRepository, create_repository
from utils import Colors, log

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("burako-bot")

EXTENSIONS = (
    "cogs.roster",
    "cogs.game_logging",
    "cogs.stats",
)


class BurakoBot(commands.Bot):
    """Burako Scorekeeper Discord Bot."""

    def __init__(self, config: Config, repository: ScoreRepository):
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None
        )

        self.config = config
        self.repository = repository

    async def setup_hook(self) -> None:
        """Called when the bot is starting up."""
        log("BOT", "setup_hook starting...", Colors.GREEN)
        await self.repository.connect()
        log("BOT", "Repository connected", Colors.GREEN)

        for extension in EXTENSIONS:
            await self.load_extension(extension)
            log("BOT", f"  Loaded {extension}", Colors.GREEN)

        self.tree.add_command(help_command)

        log("BOT", "Syncing commands...", Colors.GREEN)
        await self.tree.sync()
        log("BOT", "Commands synced!", Colors.GREEN)

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        log("BOT", f"Logged in as {self.user} (ID: {self.user.id})", Colors.GREEN)
        log("BOT", f"Connected to {len(self.guilds)} guild(s)", Colors.GREEN)
        for guild in self.guilds:
            log("BOT", f"  - {guild.name} (ID: {guild.id})", Colors.GREEN)

    async def close(self) -> None:
        """Clean up on shutdown."""
        await self.repository.close()
        await super().close()


@app_commands.command(name="help", description="Get help with Burako Scorekeeper commands")
async def help_command(interaction: discord.Interaction) -> None:
    """Display help information about all commands."""
    embed = discord.Embed(
        title="Burako Scorekeeper - Help",
        description="Keep score of your Burako games with your partners!",
        color=EMBED_COLOR
    )

    embed.add_field(
        name="Players & Pairs",
        value=(
            "**/addplayer** `name` - Register a player\n"
            "**/renameplayer** `player` `name` - Rename a player\n"
            "**/removeplayer** `player` - Remove a player\n"
            "**/players** - List players\n"
            "**/createpair** `player1` `player2` - Form a partnership\n"
            "**/pairs** - List pairs in this server"
        ),
        inline=False
    )

    embed.add_field(
        name="Games",
        value=(
            "**/log** - Log a game with final totals\n"
            "**/logsummary** - Log a game from card points and canastas\n"
            "**/logcards** - Log a game from the cards left in hand\n"
            "**/editgame** `game` - Change totals or notes\n"
            "**/undo** `game` - Revert the last change to a game\n"
            "**/deletegame** `game` - Delete a game\n"
            "**/history** `[count]` - View recent games\n"
            "**/changes** `game` - View a game's change history"
        ),
        inline=False
    )

    embed.add_field(
        name="Leaderboards",
        value=(
            "**/leaderboard** - Player standings\n"
            "**/stats** `player` - One player's standing\n"
            "**/pairleaderboard** - Pair standings\n"
            "**/bestwins** - Biggest winning margins"
        ),
        inline=False
    )

    embed.add_field(
        name="Scoring",
        value=(
            "**Cards:** Joker 50, 2 = 20, Ace 15, 3-7 = 5, 8-K = 10\n"
            "**Canastas:** Clean 200, Dirty 100\n"
            "**Winner:** +100 | **Muerto not taken:** -100\n"
            "No canasta: card points and winner bonus count against you"
        ),
        inline=False
    )

    embed.set_footer(text="May the muerto be with you!")

    await interaction.response.send_message(embed=embed)


async def main() -> None:
    """Main entry point."""
    config = Config.from_env()
    repository = create_repository(config)
    bot = BurakoBot(config, repository)

    async with bot:
        await bot.start(config.discord_token)


if __name__ == "__main__":
    asyncio.run(main())
