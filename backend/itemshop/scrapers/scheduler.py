"""APScheduler-based scrape scheduler.

Runs the storefront scrape on a cron schedule in the storefront's
timezone; the shop rotates at local midnight.
"""

from typing import Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from itemshop.scrapers.scraper_service import ScraperService

logger = structlog.get_logger(__name__)

SCRAPE_JOB_ID = "scrape_item_shop"


class ScrapeScheduler:
    """Manages the periodic scrape job.

    Job failures are logged and swallowed so that one bad run never stops
    the scheduler.
    """

    def __init__(self, service: ScraperService, cron: str = "0 0 * * *", timezone: str = "America/Lima"):
        """Initialize the scheduler.

        Args:
            service: Service whose run() is invoked by the job
            cron: Five-field crontab expression
            timezone: Timezone the crontab is evaluated in
        """
        self.service = service
        self.cron = cron
        self.timezone = timezone
        self.scheduler = AsyncIOScheduler(timezone=timezone)
        self.logger = logger.bind(service="scrape_scheduler")

    def start(self) -> None:
        """Start the scheduler. Jobs are registered with add_scrape_job()."""
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started")
        else:
            self.logger.warning("scheduler_already_running")

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running scrape."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def add_scrape_job(self) -> Job:
        """Register (or replace) the cron scrape job.

        Raises:
            ValueError: If the crontab expression is invalid
        """
        trigger = CronTrigger.from_crontab(self.cron, timezone=self.timezone)
        job = self.scheduler.add_job(
            func=self._run_scrape_wrapper,
            trigger=trigger,
            id=SCRAPE_JOB_ID,
            name="Scrape item shop",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info(
            "scrape_job_added",
            cron=self.cron,
            timezone=self.timezone,
            next_run=_isoformat(getattr(job, "next_run_time", None)),
        )
        return job

    async def _run_scrape_wrapper(self) -> None:
        """Entry point called by APScheduler; never raises."""
        self.logger.info("scheduled_scrape_starting")
        try:
            stats = await self.service.run()
        except Exception as e:
            self.logger.error("scheduled_scrape_failed", error=str(e), exc_info=True)
            return
        self.logger.info("scheduled_scrape_finished", products=stats.get("products"))

    def get_jobs_status(self) -> dict:
        """Status of the scheduled jobs keyed by job id."""
        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "name": job.name,
                "next_run": _isoformat(getattr(job, "next_run_time", None)),
                "trigger": str(job.trigger),
            }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None
