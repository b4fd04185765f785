"""
Daily reminder scheduler for learners with unrevealed words
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Fires a reminder callback once per local day at a fixed time"""

    def __init__(
        self,
        send_reminder_callback: Callable[[], Awaitable[None]],
        reminder_time: str = "09:00",
        timezone: str = "UTC",
    ):
        self.send_reminder_callback = send_reminder_callback
        self.is_running = False
        self.task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        hour, minute = map(int, reminder_time.split(":"))
        self.reminder_time = time(hour, minute)
        self.timezone = ZoneInfo(timezone)

    async def start(self):
        if self.is_running:
            logger.warning("Reminder scheduler is already running")
            return

        self.is_running = True
        self._stop_event = asyncio.Event()
        self.task = asyncio.create_task(self._schedule_loop())
        logger.info(f"Reminder scheduler started for {self.reminder_time:%H:%M} {self.timezone}")

    async def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        self._stop_event.set()
        if self.task:
            await self.task
        logger.info("Reminder scheduler stopped")

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; True if stop was requested meanwhile"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return False
        return True

    async def _schedule_loop(self):
        while self.is_running:
            next_reminder = self._get_next_reminder_time()
            delay = (next_reminder - datetime.now(self.timezone)).total_seconds()
            logger.debug(f"Next reminder at {next_reminder} ({delay:.0f}s)")

            if await self._wait(delay):
                break

            await self._send_daily_reminders()

    def _get_next_reminder_time(self, now: datetime | None = None) -> datetime:
        """Next local occurrence of the reminder time strictly after ``now``"""
        now = now or datetime.now(self.timezone)
        candidate = datetime.combine(now.date(), self.reminder_time, tzinfo=self.timezone)
        if candidate <= now:
            candidate = datetime.combine(
                now.date() + timedelta(days=1), self.reminder_time, tzinfo=self.timezone
            )
        return candidate

    async def _send_daily_reminders(self):
        """Run the callback once, logging instead of raising"""
        try:
            await self.send_reminder_callback()
        except Exception as e:
            logger.error(f"Error sending daily reminders: {e}", exc_info=True)
