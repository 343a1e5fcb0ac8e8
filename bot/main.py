import asyncio
import logging
from logging.handlers import RotatingFileHandler

import discord
from discord import app_commands

from bot.cogs.reminders import RemindersCog
from bot.commands.inbox import InboxCommands
from bot.commands.listing import ListingCommands
from bot.commands.market import MarketCommands
from bot.commands.profile import ProfileCommands
from bot.commands.stats import StatsCommands
from config import settings
from core.marketplace import Marketplace
from core.search import QueryComposer
from db.store import Store

log = logging.getLogger(__name__)


def setup_logging() -> None:
    settings.log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    log_level = getattr(logging, settings.log_level.upper())

    logging.basicConfig(level=log_level, format=log_format)

    file_handler = RotatingFileHandler(
        settings.log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    file_handler.setLevel(log_level)
    logging.getLogger().addHandler(file_handler)


class SaudaGharBot(discord.Client):
    def __init__(self, store: Store):
        intents = discord.Intents.default()
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self.store = store
        self.composer = QueryComposer(store)
        self.marketplace = Marketplace(store)
        self.reminders: RemindersCog | None = None

    async def setup_hook(self) -> None:
        await self.store.connect()
        log.info(f"Database connected: {self.store.db_path}")

        self.tree.add_command(MarketCommands(self))
        self.tree.add_command(ListingCommands(self))
        self.tree.add_command(InboxCommands(self))
        self.tree.add_command(ProfileCommands(self))
        self.tree.add_command(StatsCommands(self))

        self.reminders = RemindersCog(self, self.marketplace)
        await self.reminders.start()

        await self.tree.sync()
        log.info("Commands synced")

    async def on_ready(self) -> None:
        log.info(f"Logged in as {self.user}")

    async def close(self) -> None:
        if self.reminders:
            await self.reminders.stop()
        await self.store.close()
        await super().close()


async def main() -> None:
    setup_logging()
    if not settings.discord_bot_token:
        raise SystemExit("DISCORD_BOT_TOKEN is not set")

    bot = SaudaGharBot(Store(settings.database_path))
    async with bot:
        await bot.start(settings.discord_bot_token)


if __name__ == "__main__":
    asyncio.run(main())
