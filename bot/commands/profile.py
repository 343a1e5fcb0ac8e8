from typing import TYPE_CHECKING

import discord
from discord import app_commands

from bot.commands.common import defer, send
from core.marketplace import MarketplaceError

if TYPE_CHECKING:
    from bot.main import SaudaGharBot


@app_commands.guild_install()
@app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
class ProfileCommands(app_commands.Group):
    def __init__(self, bot: "SaudaGharBot"):
        super().__init__(name="profile", description="Your business profile")
        self.bot = bot

    @app_commands.command(name="register", description="Create or update your business profile")
    @app_commands.describe(
        full_name="Your full name",
        business_name="Registered business name",
        business_type="e.g. Textile Factory, Crop Farmer, Recycling Company",
        phone="Contact phone number",
        city="City of operation",
    )
    async def register(
        self,
        interaction: discord.Interaction,
        full_name: str,
        business_name: str,
        business_type: str,
        phone: str = "",
        city: str = "",
    ) -> None:
        if not await defer(interaction):
            return

        try:
            profile = await self.bot.marketplace.register_profile(
                user_id=interaction.user.id,
                full_name=full_name,
                business_name=business_name,
                business_type=business_type,
                phone=phone,
                city=city,
            )
        except MarketplaceError as e:
            await send(interaction, str(e))
            return
        await send(interaction, f"Profile saved for **{profile.business_name}**")

    @app_commands.command(name="show", description="Show a business profile")
    @app_commands.describe(user="Member to look up (defaults to you)")
    async def show(
        self,
        interaction: discord.Interaction,
        user: discord.User | None = None,
    ) -> None:
        if not await defer(interaction):
            return

        target = user or interaction.user
        profile = await self.bot.marketplace.get_profile(target.id)
        if not profile:
            await send(interaction, f"{target.display_name} has no profile yet")
            return

        embed = discord.Embed(title=profile.business_name, color=discord.Color.green())
        embed.add_field(name="Owner", value=profile.full_name, inline=True)
        embed.add_field(name="Business Type", value=profile.business_type, inline=True)
        embed.add_field(name="City", value=profile.city or "-", inline=True)
        embed.add_field(name="Reputation", value=f"{profile.reputation_score:.1f}★", inline=True)
        embed.add_field(name="Verified", value="Yes" if profile.verified else "No", inline=True)
        embed.set_footer(text=f"Member since {profile.created_at.strftime('%Y-%m-%d')}")
        await send(interaction, embed=embed)
