import logging

import discord

from db.models import Listing

log = logging.getLogger(__name__)


def format_price(listing: Listing) -> str:
    if listing.is_exchange_only:
        return "Exchange only"
    if listing.price is None:
        return "On request"
    return f"Rs {listing.price:,.0f}"


def listing_embed(listing: Listing, color: discord.Color | None = None) -> discord.Embed:
    embed = discord.Embed(
        title=listing.material_name[:256],
        description=listing.description[:1024] or None,
        color=color or discord.Color.green(),
    )
    embed.add_field(name="Type", value=listing.listing_type.value, inline=True)
    embed.add_field(name="Price", value=format_price(listing), inline=True)
    embed.add_field(name="Quantity", value=listing.quantity or "-", inline=True)
    embed.add_field(name="Category", value=listing.category, inline=True)
    embed.add_field(name="Condition", value=listing.condition, inline=True)
    place = ", ".join(p for p in (listing.location, listing.city) if p) or "Unknown"
    embed.add_field(name="Location", value=place, inline=True)
    embed.set_footer(text=f"ID {listing.id} · {listing.views_count} views")
    return embed


class Notifier:
    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def send_dm(self, user_id: int, embed: discord.Embed) -> bool:
        try:
            user = await self.bot.fetch_user(user_id)
        except discord.NotFound:
            log.error(f"User {user_id} not found")
            return False
        except discord.HTTPException as e:
            log.error(f"Failed to fetch user {user_id}: {e}")
            return False

        try:
            await user.send(embed=embed)
            return True
        except discord.Forbidden:
            log.warning(f"Cannot send DM to {user_id} - DMs may be disabled")
            return False
        except discord.HTTPException as e:
            log.error(f"Failed to send DM to {user_id}: {e}")
            return False

    async def new_message(self, listing: Listing, sender_id: int, body: str) -> bool:
        embed = discord.Embed(
            title="New Message",
            description=f'You received a message about "{listing.material_name}"',
            color=discord.Color.blue(),
        )
        embed.add_field(name="From", value=f"<@{sender_id}>", inline=True)
        embed.add_field(name="Listing", value=listing.id, inline=True)
        embed.add_field(name="Message", value=body[:1024], inline=False)
        return await self.send_dm(listing.owner_id, embed)

    async def stale_listing(self, listing: Listing, age_days: int) -> bool:
        embed = listing_embed(listing, color=discord.Color.gold())
        embed.title = f"Listing is {age_days} days old"
        embed.description = (
            f'"{listing.material_name}": consider updating your listing '
            "to keep it active and visible to buyers."
        )
        return await self.send_dm(listing.owner_id, embed)
