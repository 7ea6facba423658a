"""Supervisor running every cleanup job in isolation."""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, List, Sequence, Tuple

from loguru import logger

from loyalty_club_api.db.base import utcnow
from .cleanup import (
    ACCOUNT_STATUS_AUDIT_JOB,
    JOB_EXECUTION_AUDIT_JOB,
    OTP_TOKENS_JOB,
    PASSWORD_RESET_TOKENS_JOB,
    UNVERIFIED_ACCOUNTS_JOB,
    cleanup_account_status_audit,
    cleanup_job_execution_audit,
    cleanup_otp_tokens,
    cleanup_password_reset_tokens,
    cleanup_unverified_accounts,
)
from .recorder import JobOutcome, SessionFactory, record_outcome


# meta: job: run-all-cleanup-jobs

JOB_NAME = "run-all-cleanup-jobs"

CleanupJob = Callable[..., Awaitable[Dict[str, Any]]]

CLEANUP_SEQUENCE: Sequence[Tuple[str, CleanupJob]] = (
    (PASSWORD_RESET_TOKENS_JOB, cleanup_password_reset_tokens),
    (OTP_TOKENS_JOB, cleanup_otp_tokens),
    (ACCOUNT_STATUS_AUDIT_JOB, cleanup_account_status_audit),
    (JOB_EXECUTION_AUDIT_JOB, cleanup_job_execution_audit),
    (UNVERIFIED_ACCOUNTS_JOB, cleanup_unverified_accounts),
)


async def run_all_cleanup_jobs(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Run each cleanup job, then record one aggregate row for the whole pass.

    A failing sub-job is recorded by the sub-job itself and never stops the
    ones after it.
    """

    execution_date = utcnow().date()
    started = time.perf_counter()
    results: List[Dict[str, Any]] = []
    for _name, job in CLEANUP_SEQUENCE:
        results.append(await job(session_factory=session_factory))

    failed = [result["job"] for result in results if not result["success"]]
    error_message = None
    if failed:
        error_message = f"{len(failed)} cleanup job(s) failed: {', '.join(failed)}"

    outcome = JobOutcome(
        job_name=JOB_NAME,
        execution_date=execution_date,
        success=not failed,
        records_processed=sum(result["records_processed"] for result in results if result["success"]),
        execution_time_ms=int((time.perf_counter() - started) * 1000),
        error_message=error_message,
    )
    await record_outcome(outcome, session_factory=session_factory)

    summary = outcome.as_summary()
    summary["jobs"] = results
    if failed:
        logger.bind(summary=summary).warning("Cleanup pass finished with failures", failed=failed)
    else:
        logger.bind(summary=summary).info(
            "Cleanup pass finished",
            records_processed=outcome.records_processed,
        )
    return summary


__all__ = ["CLEANUP_SEQUENCE", "JOB_NAME", "run_all_cleanup_jobs"]
