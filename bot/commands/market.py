import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord
from discord import app_commands

from bot.commands.common import LISTING_TYPE_CHOICES, defer, results_embed, send
from core.categories import MATERIAL_CATEGORIES, MATERIAL_CONDITIONS, match_choice
from core.search import RemoteFetchError, SearchFilters
from core.sequencing import SearchSequencer
from db.models import Listing, ListingType
from db.store import StoreError

if TYPE_CHECKING:
    from bot.main import SaudaGharBot

log = logging.getLogger(__name__)

EMPTY_STATE = "No listings found"


@app_commands.guild_install()
@app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
class MarketCommands(app_commands.Group):
    def __init__(self, bot: "SaudaGharBot"):
        super().__init__(name="market", description="Search SaudaGhar listings")
        self.bot = bot
        self.sequencers: dict[int, SearchSequencer] = {}

    async def _run_search(
        self, user_id: int, search: Callable[[], Awaitable[list[Listing]]]
    ) -> list[Listing] | None:
        sequencer = self.sequencers.setdefault(user_id, SearchSequencer())
        results = await sequencer.run(search)
        # None means a newer run holds the sequencer and will release it
        if results is not None and self.sequencers.get(user_id) is sequencer:
            del self.sequencers[user_id]
        return results

    @app_commands.command(name="search", description="Search active listings by location and text")
    @app_commands.describe(
        location="City or area, e.g. Karachi or SITE Area",
        query="Material name, description or category",
    )
    async def search(
        self,
        interaction: discord.Interaction,
        location: str | None = None,
        query: str | None = None,
    ) -> None:
        if not await defer(interaction):
            return

        results = await self._run_search(
            interaction.user.id, lambda: self.bot.composer.search(location, query)
        )
        if results is None:
            await send(interaction, "A newer search replaced this one")
            return
        if not results:
            await send(interaction, EMPTY_STATE)
            return

        title = "Search Results" if (location or query) else "Recent Listings"
        await send(interaction, embed=results_embed(title, results))

    @app_commands.command(name="recent", description="Show the newest active listings")
    @app_commands.describe(full="Show the wider browse page instead of the recent strip")
    async def recent(self, interaction: discord.Interaction, full: bool = False) -> None:
        if not await defer(interaction):
            return

        page_size = self.bot.composer.limits.browse if full else None
        results = await self._run_search(
            interaction.user.id, lambda: self.bot.composer.search(recent_limit=page_size)
        )
        if results is None:
            await send(interaction, "A newer search replaced this one")
            return
        if not results:
            await send(interaction, EMPTY_STATE)
            return
        await send(interaction, embed=results_embed("Recent Listings", results))

    @app_commands.command(name="browse", description="Search with detailed filters")
    @app_commands.describe(
        query="Material name or description",
        city="Exact city name",
        location="Area (used when no city is given)",
        category="Material category",
        condition="Material condition",
        listing_type="Buy, Sell or Exchange",
        min_price="Minimum price",
        max_price="Maximum price",
    )
    @app_commands.choices(listing_type=LISTING_TYPE_CHOICES)
    async def browse(
        self,
        interaction: discord.Interaction,
        query: str | None = None,
        city: str | None = None,
        location: str | None = None,
        category: str | None = None,
        condition: str | None = None,
        listing_type: app_commands.Choice[str] | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> None:
        if not await defer(interaction):
            return

        canonical_category = None
        if category:
            canonical_category = match_choice(category, MATERIAL_CATEGORIES)
            if not canonical_category:
                await send(interaction, f"Unknown category `{category}`")
                return
        canonical_condition = None
        if condition:
            canonical_condition = match_choice(condition, MATERIAL_CONDITIONS)
            if not canonical_condition:
                await send(interaction, f"Unknown condition `{condition}`")
                return

        try:
            filters = SearchFilters(
                search=query,
                city=city,
                location=location,
                category=canonical_category,
                condition=canonical_condition,
                listing_type=ListingType(listing_type.value) if listing_type else None,
                min_price=min_price,
                max_price=max_price,
            )
        except ValueError as e:
            await send(interaction, str(e))
            return

        results = await self._run_search(
            interaction.user.id, lambda: self.bot.composer.advanced_search(filters)
        )
        if results is None:
            await send(interaction, "A newer search replaced this one")
            return
        if not results:
            await send(interaction, EMPTY_STATE)
            return
        await send(interaction, embed=results_embed("Search Results", results))

    @app_commands.command(name="featured", description="Most viewed active listings")
    async def featured(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        try:
            results = await self.bot.composer.featured()
        except RemoteFetchError as e:
            log.error(f"Featured listings failed: {e}")
            results = []

        if not results:
            await send(interaction, EMPTY_STATE)
            return
        await send(interaction, embed=results_embed("Featured Listings", results))

    @app_commands.command(name="categories", description="Active listings per category")
    async def categories(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        try:
            counts = await self.bot.marketplace.category_counts()
        except StoreError as e:
            log.error(f"Category counts failed: {e}")
            await send(interaction, "Categories are unavailable right now")
            return

        lines = [f"{name}: {counts.get(name, 0)}" for name in MATERIAL_CATEGORIES]
        embed = discord.Embed(
            title="Categories",
            description="\n".join(lines),
            color=discord.Color.green(),
        )
        await send(interaction, embed=embed)
