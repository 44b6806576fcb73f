# SPDX-License-Identifier: Apache-2.0

"""
Periodic pull scheduling.

Runs ``SyncCoordinator.scheduled_pull`` on an APScheduler interval job.
``max_instances=1`` with ``coalesce=True`` means a tick that fires while a
pull is still running is skipped instead of stacking another pull.
"""

import os
import atexit
from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from services.sync import SyncCoordinator

logger = logging.getLogger(__name__)

PULL_JOB_ID = "remote_pull"
DEFAULT_INTERVAL_SEC = 15


class SyncScheduler:
    """Owns the background scheduler driving periodic pulls."""

    def __init__(self, coordinator: SyncCoordinator, interval_seconds: Optional[int] = None):
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds or int(os.getenv("SYNC_INTERVAL_SEC", DEFAULT_INTERVAL_SEC))
        self.scheduler: Optional[BackgroundScheduler] = None

    def start(self) -> BackgroundScheduler:
        """Start the scheduler and register the pull job."""
        if self.scheduler is not None and self.scheduler.running:
            return self.scheduler

        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            func=self.coordinator.scheduled_pull,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=PULL_JOB_ID,
            name="Remote snapshot pull",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        atexit.register(self.shutdown)

        logger.info(f"Sync scheduler started with {self.interval_seconds}s interval")
        return self.scheduler

    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def shutdown(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Sync scheduler stopped")


def init_scheduler(app, coordinator: SyncCoordinator) -> Optional[SyncScheduler]:
    """Start periodic pulls unless disabled for this app."""
    if app.config.get('TESTING'):
        logger.info("Scheduler disabled in TESTING")
        return None

    if not app.config.get('AUTO_START_SYNC', True):
        logger.info("Scheduler disabled by config")
        return None

    sync_scheduler = SyncScheduler(coordinator, app.config.get('SYNC_INTERVAL_SEC'))
    sync_scheduler.start()
    return sync_scheduler
