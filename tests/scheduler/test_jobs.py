from __future__ import annotations

from decimal import Decimal

import pytest

from school_admin.scheduler.jobs import (
    LATE_FEE_JOB_ID,
    MONTHLY_FEE_JOB_ID,
    FeeAutomationJobs,
    shutdown_scheduler,
    start_scheduler,
)


class StubLateFees:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    def apply_late_fees_all_schools(self) -> dict:
        self.calls += 1
        if self.fail:
            raise RuntimeError("database unavailable")
        return {"schools_processed": 2, "total_fees_updated": 5, "total_discounts_forfeited": 1}


class StubBilling:
    def __init__(self, fail: bool = False):
        self.fail = fail

    def generate_monthly_all_schools(self) -> dict:
        if self.fail:
            raise RuntimeError("database unavailable")
        return {
            "total_fees_created": 3,
            "grand_total": Decimal("450.00"),
            "schools": [{"school_id": 1, "fees_created": 3}, {"school_id": 2, "failed": True, "error": "boom"}],
        }


@pytest.fixture(autouse=True)
def _no_running_scheduler():
    shutdown_scheduler()
    yield
    shutdown_scheduler()


def test_jobs_return_service_results():
    jobs = FeeAutomationJobs(StubBilling(), StubLateFees())

    assert jobs.apply_late_fees()["total_fees_updated"] == 5
    assert jobs.generate_monthly_fees()["total_fees_created"] == 3


def test_jobs_swallow_and_log_failures(caplog):
    late_fees = StubLateFees(fail=True)
    jobs = FeeAutomationJobs(StubBilling(fail=True), late_fees)

    assert jobs.apply_late_fees() is None
    assert jobs.generate_monthly_fees() is None
    assert late_fees.calls == 1
    assert "Late fee job failed" in caplog.text
    assert "Monthly fee job failed" in caplog.text


def test_start_scheduler_registers_both_jobs_once():
    jobs = FeeAutomationJobs(StubBilling(), StubLateFees())

    scheduler = start_scheduler(jobs, timezone="UTC", late_fee_cron="0 1 * * *", monthly_fee_cron="0 2 25 * *")
    again = start_scheduler(jobs, timezone="UTC", late_fee_cron="5 1 * * *", monthly_fee_cron="0 2 25 * *")

    assert again is scheduler
    assert scheduler.running
    assert {job.id for job in scheduler.get_jobs()} == {LATE_FEE_JOB_ID, MONTHLY_FEE_JOB_ID}

    shutdown_scheduler()
    assert not scheduler.running
