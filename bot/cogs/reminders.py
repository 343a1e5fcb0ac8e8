import logging
from datetime import datetime
from typing import TYPE_CHECKING

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings
from core.marketplace import Marketplace
from core.notifier import Notifier

if TYPE_CHECKING:
    from bot.main import SaudaGharBot

log = logging.getLogger(__name__)


class RemindersCog:
    def __init__(self, bot: "SaudaGharBot", marketplace: Marketplace):
        self.bot = bot
        self.marketplace = marketplace
        self.scheduler = AsyncIOScheduler()
        self.notifier = Notifier(bot)

    async def start(self) -> None:
        self.scheduler.add_job(
            self._stale_listings_job,
            IntervalTrigger(hours=settings.stale_check_interval_hours),
            id="stale_listings",
            replace_existing=True,
        )
        self.scheduler.start()
        log.info(f"Reminder scheduler started ({settings.stale_check_interval_hours}h interval)")

    async def stop(self) -> None:
        self.scheduler.shutdown(wait=False)

    async def _stale_listings_job(self) -> None:
        log.info("Running stale listing check")
        now = datetime.utcnow()
        try:
            reminded = await self.marketplace.remind_stale_listings(now)
        except Exception as e:
            log.exception(f"Stale listing check failed: {e}")
            await self._send_admin_alert("⚠️ Stale listing check failed", str(e))
            return

        for listing in reminded:
            await self.notifier.stale_listing(listing, (now - listing.created_at).days)

    async def _send_admin_alert(self, title: str, message: str) -> None:
        if not settings.discord_admin_id:
            return
        embed = discord.Embed(
            title=title,
            description=message[:2000],
            color=discord.Color.red(),
        )
        await self.notifier.send_dm(settings.discord_admin_id, embed)
