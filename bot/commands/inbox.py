from typing import TYPE_CHECKING

import discord
from discord import app_commands

from bot.commands.common import defer, send

if TYPE_CHECKING:
    from bot.main import SaudaGharBot


@app_commands.guild_install()
@app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
class InboxCommands(app_commands.Group):
    def __init__(self, bot: "SaudaGharBot"):
        super().__init__(name="inbox", description="Messages, notifications and transactions")
        self.bot = bot

    @app_commands.command(name="messages", description="Messages you received")
    async def messages(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        messages = await self.bot.marketplace.inbox(interaction.user.id)
        if not messages:
            await send(interaction, "No messages")
            return

        lines = []
        for m in messages:
            marker = "" if m.read else "🆕 "
            time_str = m.created_at.strftime("%m/%d %H:%M")
            lines.append(f"{marker}#{m.id} `{time_str}` <@{m.sender_id}>: {m.body[:80]}")

        embed = discord.Embed(
            title="Messages",
            description="\n".join(lines),
            color=discord.Color.blue(),
        )
        await send(interaction, embed=embed)

    @app_commands.command(name="notifications", description="Your notifications")
    @app_commands.describe(unread="Only show unread notifications")
    async def notifications(self, interaction: discord.Interaction, unread: bool = False) -> None:
        if not await defer(interaction):
            return

        notifications = await self.bot.marketplace.notifications(
            interaction.user.id, unread_only=unread
        )
        if not notifications:
            await send(interaction, "No notifications")
            return

        lines = []
        for n in notifications:
            marker = "" if n.read else "🆕 "
            lines.append(f"{marker}#{n.id} **{n.title}**: {n.message[:100]}")

        embed = discord.Embed(
            title="Notifications",
            description="\n".join(lines),
            color=discord.Color.blue(),
        )
        await send(interaction, embed=embed)

    @app_commands.command(name="read", description="Mark a message or notification as read")
    @app_commands.describe(
        kind="What to mark",
        item_id="Message or notification number",
    )
    @app_commands.choices(
        kind=[
            app_commands.Choice(name="message", value="message"),
            app_commands.Choice(name="notification", value="notification"),
        ]
    )
    async def read(
        self,
        interaction: discord.Interaction,
        kind: app_commands.Choice[str],
        item_id: int,
    ) -> None:
        if not await defer(interaction):
            return

        if kind.value == "message":
            ok = await self.bot.marketplace.mark_message_read(item_id, interaction.user.id)
        else:
            ok = await self.bot.marketplace.mark_notification_read(item_id, interaction.user.id)

        if not ok:
            await send(interaction, f"{kind.name.capitalize()} #{item_id} not found")
            return
        await send(interaction, f"{kind.name.capitalize()} #{item_id} marked as read")

    @app_commands.command(name="transactions", description="Your completed deals")
    async def transactions(self, interaction: discord.Interaction) -> None:
        if not await defer(interaction):
            return

        transactions = await self.bot.marketplace.transactions(interaction.user.id)
        if not transactions:
            await send(interaction, "No transactions")
            return

        lines = []
        for t in transactions:
            role = "bought" if t.buyer_id == interaction.user.id else "sold"
            time_str = t.created_at.strftime("%Y-%m-%d")
            line = f"`{time_str}` {role} · listing `{t.listing_id}` · {t.status.value}"
            if t.notes:
                line += f"\n└ {t.notes[:60]}"
            lines.append(line)

        embed = discord.Embed(
            title="Transactions",
            description="\n".join(lines),
            color=discord.Color.blue(),
        )
        await send(interaction, embed=embed)
