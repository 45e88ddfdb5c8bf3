"""Background scheduler for periodic sync"""

import logging
import signal
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from taskbridge.exceptions import SyncCancelled

logger = logging.getLogger(__name__)

JOB_ID = "sync_cycle"


class SyncScheduler:
    """Scheduler for periodic task synchronization"""

    def __init__(self, sync_service, interval_minutes: int):
        self.scheduler = BackgroundScheduler()
        self.sync_service = sync_service
        self.interval_minutes = interval_minutes
        # Set on shutdown; also cancels a cycle that is still running.
        self.stop_event = threading.Event()

    def start(self, run_immediately: bool = True):
        """Start the scheduler"""
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self._sync_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            replace_existing=True,
            # A slow cycle delays the next tick instead of overlapping it.
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        self.scheduler.start()
        logger.info(f"Sync scheduler started, syncing every {self.interval_minutes} minutes")

    def stop(self):
        """Stop the scheduler"""
        self.stop_event.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("Sync scheduler stopped")

    def request_stop(self, signum=None, frame=None):
        if signum is not None:
            logger.info(f"Received signal {signum}, shutting down watch mode")
        self.stop_event.set()

    def _sync_job(self):
        """Job function running one sync cycle"""
        if self.stop_event.is_set():
            return
        try:
            logger.info("Running scheduled sync")
            summary = self.sync_service.run_cycle(self.stop_event)
            logger.info(summary.render())
        except SyncCancelled as e:
            logger.info(f"Scheduled sync stopped: {e}")
        except Exception as e:
            # A failed cycle never stops the watch loop; the next tick retries.
            logger.error(f"Scheduled sync failed: {e}")

    def run_forever(self):
        """Run until SIGINT/SIGTERM"""
        signal.signal(signal.SIGINT, self.request_stop)
        signal.signal(signal.SIGTERM, self.request_stop)
        self.start()
        try:
            while not self.stop_event.wait(1.0):
                pass
        finally:
            self.stop()
