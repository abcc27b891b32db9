"""Cron-driven fee automation: daily late fees and the monthly billing run."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..fees.billing_service import FeeBillingService
from ..fees.late_fee_service import LateFeeService

logger = logging.getLogger(__name__)

LATE_FEE_JOB_ID = "apply_late_fees"
MONTHLY_FEE_JOB_ID = "generate_monthly_fees"


class FeeAutomationJobs:
    def __init__(self, billing: FeeBillingService, late_fees: LateFeeService):
        self._billing = billing
        self._late_fees = late_fees

    def apply_late_fees(self) -> Optional[dict]:
        try:
            result = self._late_fees.apply_late_fees_all_schools()
        except Exception:
            logger.exception("Late fee job failed")
            return None
        logger.info(
            "Late fee job: %d school(s), %d fee(s) updated, %d discount(s) forfeited",
            result["schools_processed"],
            result["total_fees_updated"],
            result["total_discounts_forfeited"],
        )
        return result

    def generate_monthly_fees(self) -> Optional[dict]:
        """Bills every active school for the coming month."""
        try:
            result = self._billing.generate_monthly_all_schools()
        except Exception:
            logger.exception("Monthly fee job failed")
            return None
        failed = [row["school_id"] for row in result["schools"] if row.get("failed")]
        logger.info(
            "Monthly fee job: %d fee(s) created, grand total %s, failed schools %s",
            result["total_fees_created"],
            result["grand_total"],
            failed or "none",
        )
        return result


_scheduler: Optional[BackgroundScheduler] = None


def start_scheduler(
    jobs: FeeAutomationJobs,
    *,
    timezone: str,
    late_fee_cron: str,
    monthly_fee_cron: str,
) -> BackgroundScheduler:
    """Start the background scheduler once per process; later calls return the running instance."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    scheduler = BackgroundScheduler(timezone=timezone)
    scheduler.add_job(
        jobs.apply_late_fees,
        CronTrigger.from_crontab(late_fee_cron, timezone=timezone),
        id=LATE_FEE_JOB_ID,
        replace_existing=True,
    )
    scheduler.add_job(
        jobs.generate_monthly_fees,
        CronTrigger.from_crontab(monthly_fee_cron, timezone=timezone),
        id=MONTHLY_FEE_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info("Scheduler started (late fees: %s, monthly fees: %s, tz=%s)", late_fee_cron, monthly_fee_cron, timezone)
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
