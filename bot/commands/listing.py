import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands

from bot.commands.common import LISTING_TYPE_CHOICES, defer, results_embed, send
from core.marketplace import MarketplaceError
from core.notifier import Notifier, listing_embed
from db.models import ListingStatus, ListingType

if TYPE_CHECKING:
    from bot.main import SaudaGharBot

log = logging.getLogger(__name__)


@app_commands.guild_install()
@app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
class ListingCommands(app_commands.Group):
    def __init__(self, bot: "SaudaGharBot"):
        super().__init__(name="listing", description="Manage SaudaGhar listings")
        self.bot = bot
        self.notifier = Notifier(bot)

    @app_commands.command(name="add", description="Post a new material listing")
    @app_commands.describe(
        material="Material name",
        category="Material category, e.g. Textile Waste",
        condition="New, Used, Leftover, Waste or Recyclable",
        listing_type="Buy, Sell or Exchange",
        quantity="Quantity, e.g. 500 kg",
        price="Asking price (leave empty for exchange)",
        exchange_only="Only accept an exchange",
        city="City",
        location="Area within the city",
        description="Details for buyers",
    )
    @app_commands.choices(listing_type=LISTING_TYPE_CHOICES)
    async def add(
        self,
        interaction: discord.Interaction,
        material: str,
        category: str,
        condition: str,
        listing_type: app_commands.Choice[str],
        quantity: str = "",
        price: float | None = None,
        exchange_only: bool = False,
        city: str = "",
        location: str = "",
        description: str = "",
    ) -> None:
        if not await defer(interaction):
            return

        try:
            listing = await self.bot.marketplace.create_listing(
                owner_id=interaction.user.id,
                material_name=material,
                category=category,
                condition=condition,
                listing_type=ListingType(listing_type.value),
                quantity=quantity,
                price=price,
                is_exchange_only=exchange_only,
                city=city,
                location=location,
                description=description,
            )
        except MarketplaceError as e:
            await send(interaction, str(e))
            return

        await send(interaction, f"Listing `{listing.id}` posted", embed=listing_embed(listing))

    @app_commands.command(name="show", description="Show a listing")
    @app_commands.describe(listing_id="Listing ID")
    async def show(self, interaction: discord.Interaction, listing_id: str) -> None:
        if not await defer(interaction):
            return

        try:
            listing = await self.bot.marketplace.view_listing(listing_id.strip())
        except MarketplaceError as e:
            await send(interaction, str(e))
            return

        embed = listing_embed(listing)
        profile = await self.bot.marketplace.get_profile(listing.owner_id)
        if profile:
            seller = f"{profile.business_name} ({profile.reputation_score:.1f}★)"
        else:
            seller = f"<@{listing.owner_id}>"
        embed.add_field(name="Seller", value=seller, inline=False)
        if listing.status is not ListingStatus.ACTIVE:
            embed.add_field(name="Status", value="Inactive", inline=False)
        await send(interaction, embed=embed)

    @app_commands.command(name="mine", description="List your active listings")
    async def mine(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        listings = await self.bot.marketplace.user_listings(interaction.user.id)
        if not listings:
            await send(interaction, "You have no active listings")
            return
        await send(interaction, embed=results_embed("Your Listings", listings))

    @app_commands.command(name="deactivate", description="Take one of your listings down")
    @app_commands.describe(listing_id="Listing ID")
    async def deactivate(self, interaction: discord.Interaction, listing_id: str) -> None:
        if not await defer(interaction):
            return

        try:
            await self.bot.marketplace.deactivate_listing(listing_id.strip(), interaction.user.id)
        except MarketplaceError as e:
            await send(interaction, str(e))
            return
        await send(interaction, f"Listing `{listing_id}` deactivated")

    @app_commands.command(name="message", description="Message the owner of a listing")
    @app_commands.describe(listing_id="Listing ID", message="Your message")
    async def message(
        self,
        interaction: discord.Interaction,
        listing_id: str,
        message: str,
    ) -> None:
        if not await defer(interaction):
            return

        try:
            _, listing = await self.bot.marketplace.send_message(
                listing_id.strip(), interaction.user.id, message
            )
        except MarketplaceError as e:
            await send(interaction, str(e))
            return

        delivered = await self.notifier.new_message(listing, interaction.user.id, message.strip())
        if not delivered:
            log.info(f"Owner of {listing.id} not reachable by DM, message kept in inbox")
        await send(interaction, "Message sent")

    @app_commands.command(name="rate", description="Rate the seller of a listing")
    @app_commands.describe(
        listing_id="Listing ID",
        score="1 to 5 stars",
        comment="Optional comment",
    )
    async def rate(
        self,
        interaction: discord.Interaction,
        listing_id: str,
        score: app_commands.Range[int, 1, 5],
        comment: str | None = None,
    ) -> None:
        if not await defer(interaction):
            return

        try:
            reputation = await self.bot.marketplace.rate_seller(
                listing_id.strip(), interaction.user.id, score, comment
            )
        except MarketplaceError as e:
            await send(interaction, str(e))
            return
        await send(interaction, f"Rating submitted. Seller reputation is now {reputation:.1f}★")
