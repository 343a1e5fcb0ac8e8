import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands

from bot.commands.common import defer, send
from db.store import StoreError

if TYPE_CHECKING:
    from bot.main import SaudaGharBot

log = logging.getLogger(__name__)


@app_commands.guild_install()
@app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
class StatsCommands(app_commands.Group):
    def __init__(self, bot: "SaudaGharBot"):
        super().__init__(name="stats", description="View marketplace statistics")
        self.bot = bot

    @app_commands.command(name="overview", description="Show marketplace statistics")
    async def overview(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        try:
            stats = await self.bot.marketplace.marketplace_stats()
            counts = await self.bot.marketplace.category_counts()
        except StoreError as e:
            log.error(f"Stats query failed: {e}")
            await send(interaction, "Statistics are unavailable right now")
            return

        embed = discord.Embed(
            title="SaudaGhar Stats",
            color=discord.Color.green(),
        )
        embed.add_field(name="Active Listings", value=str(stats.total_listings), inline=True)
        embed.add_field(name="Total Views", value=str(stats.total_views), inline=True)
        embed.add_field(name="Businesses", value=str(stats.active_users), inline=True)

        top = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:5]
        if top:
            embed.add_field(
                name="Top Categories",
                value="\n".join(f"{name}: {count}" for name, count in top),
                inline=False,
            )

        await send(interaction, embed=embed)
