"""Background scheduler for the daily reminder job (APScheduler)."""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import RemindersConfig, get_config
from .services.reminders import run_daily_job

logger = logging.getLogger(__name__)

JOB_ID = "daily_reminders"


class ReminderScheduler:
    """Runs ``run_daily_job`` on the configured crontab."""

    def __init__(self, config: Optional[RemindersConfig] = None):
        self.config = config or get_config().reminders
        self.scheduler = BackgroundScheduler(timezone=self.config.timezone)

    def start(self) -> None:
        trigger = CronTrigger.from_crontab(self.config.cron, timezone=self.config.timezone)
        self.scheduler.add_job(
            run_daily_job,
            trigger,
            id=JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.start()
        logger.info(f"Reminder job scheduled: '{self.config.cron}' ({self.config.timezone})")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    def next_run_time(self):
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
