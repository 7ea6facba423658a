"""Maintenance job exports."""

from .cleanup import (  # noqa: F401
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
from .execution_log import JobExecutionLog  # noqa: F401
from .inactivity import JOB_NAME as MARK_INACTIVE_JOB, mark_inactive_accounts_batched  # noqa: F401
from .master import JOB_NAME as RUN_ALL_CLEANUP_JOB, run_all_cleanup_jobs  # noqa: F401

MAINTENANCE_JOBS = {
    MARK_INACTIVE_JOB: mark_inactive_accounts_batched,
    PASSWORD_RESET_TOKENS_JOB: cleanup_password_reset_tokens,
    OTP_TOKENS_JOB: cleanup_otp_tokens,
    ACCOUNT_STATUS_AUDIT_JOB: cleanup_account_status_audit,
    JOB_EXECUTION_AUDIT_JOB: cleanup_job_execution_audit,
    UNVERIFIED_ACCOUNTS_JOB: cleanup_unverified_accounts,
    RUN_ALL_CLEANUP_JOB: run_all_cleanup_jobs,
}

__all__ = [
    "MAINTENANCE_JOBS",
    "JobExecutionLog",
    "cleanup_account_status_audit",
    "cleanup_job_execution_audit",
    "cleanup_otp_tokens",
    "cleanup_password_reset_tokens",
    "cleanup_unverified_accounts",
    "mark_inactive_accounts_batched",
    "run_all_cleanup_jobs",
]
