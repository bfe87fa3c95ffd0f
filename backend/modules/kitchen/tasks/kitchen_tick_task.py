# backend/modules/kitchen/tasks/kitchen_tick_task.py

"""
Periodic tick for a kitchen engine.

Runs on the asyncio event loop and re-evaluates timers and order deadlines
once per interval.
"""

import logging
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..models.kitchen_models import TickReport
from ..services.kitchen_engine import KitchenEngine

logger = logging.getLogger(__name__)

TickListener = Callable[[TickReport], None]


class KitchenTickScheduler:
    """Scheduler driving ``KitchenEngine.tick``"""

    def __init__(self, engine: KitchenEngine, interval_seconds: Optional[float] = None):
        self.engine = engine
        self.interval_seconds = interval_seconds or engine.config.TICK_INTERVAL_SECONDS
        self.scheduler = AsyncIOScheduler()
        self.is_running = False
        self.tick_job_id = "kitchen_tick_job"
        self.last_report: Optional[TickReport] = None
        self._listeners: List[TickListener] = []

    def add_listener(self, listener: TickListener):
        """Call ``listener`` with every tick report"""
        self._listeners.append(listener)

    def start(self):
        """Start the kitchen tick scheduler"""
        if self.is_running:
            logger.warning("Kitchen tick scheduler already running")
            return

        try:
            self.scheduler.add_job(
                func=self._tick_job,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                id=self.tick_job_id,
                name=f"Kitchen Tick ({self.engine.module_id})",
                replace_existing=True,
                max_instances=1,
            )

            self.scheduler.start()
            self.is_running = True

            logger.info(
                f"Kitchen tick scheduler started for {self.engine.module_id} "
                f"every {self.interval_seconds}s"
            )

        except Exception as e:
            logger.error(f"Failed to start kitchen tick scheduler: {e}", exc_info=True)
            raise

    def stop(self):
        """Stop the scheduler; no tick fires afterwards"""
        if not self.is_running:
            return

        # Flip first so a job already queued on the loop becomes a no-op
        self.is_running = False
        try:
            self.scheduler.shutdown(wait=False)
            logger.info("Kitchen tick scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping kitchen tick scheduler: {e}", exc_info=True)

    async def _tick_job(self):
        """Run one engine tick"""
        if not self.is_running:
            return

        try:
            report = self.engine.tick()
            if report is None:
                return

            self.last_report = report
            if report.reclassified_timer_ids:
                logger.info(
                    f"Tick {self.engine.module_id}: "
                    f"{len(report.reclassified_timer_ids)} timers became overdue"
                )

            for listener in self._listeners:
                listener(report)

        except Exception as e:
            logger.error(f"Error in kitchen tick job: {str(e)}", exc_info=True)

    def get_status(self) -> dict:
        """Get scheduler status"""
        if not self.is_running:
            return {"scheduler_running": False, "jobs": []}

        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat()
                    if job.next_run_time
                    else None,
                }
            )

        return {"scheduler_running": True, "jobs": jobs}
