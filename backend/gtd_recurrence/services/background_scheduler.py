"""
Background scheduler service for periodic jobs.

Runs the recurring-series catch-up check on an interval so that series whose
latest instance was completed while the app was idle keep moving.
Uses APScheduler for in-process scheduling without external dependencies.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from gtd_recurrence.core.config import get_settings
from gtd_recurrence.core.exceptions import RecurrenceEngineError
from gtd_recurrence.core.logger import logger
from gtd_recurrence.interfaces.field_cipher import IFieldCipher
from gtd_recurrence.interfaces.task_repository import ITaskRepository
from gtd_recurrence.services.recurrence_series_service import RecurrenceSeriesService


class BackgroundScheduler:
    """
    Background scheduler for periodic jobs.

    Features:
    - Catch-up generation for stale recurring series (every N minutes)
    - Startup catch-up run
    """

    def __init__(
        self,
        task_repo: ITaskRepository,
        cipher: IFieldCipher,
        interval_minutes: int = 60,
    ):
        self._task_repo = task_repo
        self._cipher = cipher
        self._interval_minutes = interval_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def start(self):
        """Start the scheduler and run one catch-up pass."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.is_test:
            logger.info("Background scheduler disabled in test environment")
            return
        if not settings.CATCH_UP_ENABLED:
            logger.info("Recurring catch-up disabled by configuration")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_catch_up,
            IntervalTrigger(minutes=self._interval_minutes),
            id="recurring_catch_up",
            name="Recurring Series Catch-up",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"Background scheduler started: recurring catch-up every {self._interval_minutes} minutes"
        )

        asyncio.create_task(self._run_catch_up_background())

    async def stop(self):
        """Stop the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background scheduler stopped")

    async def _run_catch_up_background(self):
        """Startup wrapper for the catch-up run with error handling."""
        try:
            await self.run_catch_up()
        except RecurrenceEngineError as e:
            logger.error(f"Startup recurring catch-up failed: {e}")

    async def run_catch_up(self, today: Optional[date] = None) -> int:
        """
        Run the catch-up check for every user that owns a series.

        A failure for one user is logged and does not stop the others.

        Returns:
            Number of generated instances
        """
        generated = 0
        for user_id in await self._task_repo.list_template_owners():
            service = RecurrenceSeriesService(
                user_id=user_id,
                task_repo=self._task_repo,
                cipher=self._cipher,
            )
            try:
                created = await service.run_catch_up(today)
            except RecurrenceEngineError as e:
                logger.error(f"Recurring catch-up failed for user {user_id}: {e}")
                continue
            generated += len(created)

        if generated:
            logger.info(f"Recurring catch-up generated {generated} instance(s)")
        return generated


# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


async def get_background_scheduler() -> BackgroundScheduler:
    """Get the global background scheduler instance."""
    global _scheduler
    if _scheduler is None:
        from gtd_recurrence.api.deps import get_field_cipher, get_task_repository

        _scheduler = BackgroundScheduler(
            task_repo=get_task_repository(),
            cipher=get_field_cipher(),
            interval_minutes=get_settings().CATCH_UP_INTERVAL_MINUTES,
        )
    return _scheduler


async def start_background_scheduler():
    """Start the global background scheduler."""
    scheduler = await get_background_scheduler()
    await scheduler.start()


async def stop_background_scheduler():
    """Stop the global background scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
