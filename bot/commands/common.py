import discord

from core.notifier import format_price
from db.models import Listing, ListingType

MAX_RESULTS_SHOWN = 10
LISTING_TYPE_CHOICES = [
    discord.app_commands.Choice(name=t.value, value=t.value) for t in ListingType
]


async def defer(interaction: discord.Interaction) -> bool:
    try:
        await interaction.response.defer(ephemeral=True)
        return True
    except discord.NotFound:
        return False  # Interaction expired


async def send(interaction: discord.Interaction, content: str | None = None, **kwargs) -> None:
    try:
        await interaction.followup.send(content, **kwargs)
    except discord.NotFound:
        pass  # Interaction expired


def results_embed(title: str, listings: list[Listing]) -> discord.Embed:
    lines = []
    for listing in listings[:MAX_RESULTS_SHOWN]:
        place = listing.city or listing.location or "?"
        lines.append(
            f"**{listing.material_name}** ({listing.listing_type.value}) · {place} · "
            f"{format_price(listing)}\n└ `{listing.id}`"
        )
    embed = discord.Embed(title=title, description="\n".join(lines), color=discord.Color.blue())
    if len(listings) > MAX_RESULTS_SHOWN:
        embed.set_footer(text=f"Showing {MAX_RESULTS_SHOWN} of {len(listings)} results")
    else:
        embed.set_footer(text=f"{len(listings)} results")
    return embed
