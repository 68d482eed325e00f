import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import schedule

from ..monitors.regulatory_monitor import RegulatoryMonitor
from ..monitors.results import RunReport

logger = logging.getLogger(__name__)


class MonitoringScheduler:
    """Daily trigger for the monitoring pipeline, for deployments without an external cron."""

    def __init__(self, monitor: RegulatoryMonitor, run_time: str = "09:00",
                 scheduler: Optional[schedule.Scheduler] = None):
        self.monitor = monitor
        self.run_time = run_time
        self.scheduler = scheduler or schedule.Scheduler()
        self.running = False
        self.last_report: Optional[RunReport] = None
        self.last_run_at: Optional[datetime] = None
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._schedule_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the monitoring scheduler."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        logger.info("Starting monitoring scheduler...")

        self.scheduler.clear()
        self.scheduler.every().day.at(self.run_time).do(self.run_immediate_check).tag("daily_monitor")

        self._schedule_thread = threading.Thread(target=self._run_scheduler, daemon=True)
        self._schedule_thread.start()

        logger.info(f"Monitoring scheduler started, daily run at {self.run_time}")

    def stop(self) -> None:
        """Stop the monitoring scheduler."""
        if not self.running:
            logger.warning("Scheduler is not running")
            return

        self.running = False
        self._stop_event.set()
        self.scheduler.clear()

        if self._schedule_thread:
            self._schedule_thread.join(timeout=5)

        logger.info("Monitoring scheduler stopped")

    def _run_scheduler(self) -> None:
        """Run the scheduler loop."""
        while self.running:
            try:
                self.scheduler.run_pending()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)
            self._stop_event.wait(30)

    def run_immediate_check(self) -> Optional[RunReport]:
        """
        Run one monitoring pass now.

        Returns:
            The run report, or None if a run is already in progress
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Monitoring run already in progress, skipping")
            return None

        try:
            report = asyncio.run(self.monitor.run())
            self.last_report = report
            self.last_run_at = datetime.now(timezone.utc)
            if report.success:
                logger.info(f"Scheduled run finished with {len(report.results or [])} source results")
            else:
                logger.error(f"Scheduled run failed: {report.error}")
            return report
        finally:
            self._run_lock.release()

    def get_schedule_status(self) -> Dict[str, Any]:
        """Get current scheduler status."""
        next_run = self.scheduler.next_run
        return {
            "running": self.running,
            "scheduled_jobs": len(self.scheduler.jobs),
            "next_run": next_run.isoformat() if next_run else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_success": self.last_report.success if self.last_report else None
        }
