"""Retention jobs deleting rows older than their configured threshold.

Each job deletes in batches of ``cleanup_batch_size`` and commits every
batch. Cutoffs are strict: a row exactly at the threshold is kept.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict
from uuid import UUID

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.db.base import utcnow
from loyalty_club_api.models.account import AccountVerificationStatus, CustomerAccount
from loyalty_club_api.models.audit import AccountStatusAudit
from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from loyalty_club_api.models.token import OtpToken, PasswordResetToken
from loyalty_club_api.services.accounts import AccountStatusAuditLog
from loyalty_club_api.services.configuration import (
    ACCOUNT_STATUS_AUDIT_CLEANUP_DAYS,
    CLEANUP_BATCH_SIZE,
    JOB_EXECUTION_AUDIT_CLEANUP_DAYS,
    OTP_TOKEN_CLEANUP_DAYS,
    PASSWORD_RESET_TOKEN_CLEANUP_DAYS,
    UNVERIFIED_ACCOUNT_CLEANUP_DAYS,
    ConfigSnapshot,
)
from .execution_log import JobExecutionLog
from .recorder import JobProgress, SessionFactory, run_recorded_job


PASSWORD_RESET_TOKENS_JOB = "cleanup-password-reset-tokens"
OTP_TOKENS_JOB = "cleanup-otp-tokens"
ACCOUNT_STATUS_AUDIT_JOB = "cleanup-account-status-audit"
JOB_EXECUTION_AUDIT_JOB = "cleanup-job-execution-audit"
UNVERIFIED_ACCOUNTS_JOB = "cleanup-unverified-accounts"


def _cutoff(config: ConfigSnapshot, key: str) -> tuple[datetime, int]:
    days = config.require_positive_int(key)
    batch_size = config.require_positive_int(CLEANUP_BATCH_SIZE)
    return utcnow() - timedelta(days=days), batch_size


async def _delete_tokens_older_than(
    session: AsyncSession,
    progress: JobProgress,
    model: type[PasswordResetToken] | type[OtpToken],
    cutoff: datetime,
    batch_size: int,
) -> None:
    ids_stmt = select(model.id).where(model.created_at < cutoff).order_by(model.id).limit(batch_size)
    while True:
        ids = list((await session.execute(ids_stmt)).scalars())
        if not ids:
            break
        await session.execute(delete(model).where(model.id.in_(ids)).execution_options(synchronize_session=False))
        await session.commit()
        progress.records += len(ids)
        if len(ids) < batch_size:
            break


async def _purge_password_reset_tokens(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    # Age only; used and unused tokens alike.
    cutoff, batch_size = _cutoff(config, PASSWORD_RESET_TOKEN_CLEANUP_DAYS)
    await _delete_tokens_older_than(session, progress, PasswordResetToken, cutoff, batch_size)


async def _purge_otp_tokens(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    cutoff, batch_size = _cutoff(config, OTP_TOKEN_CLEANUP_DAYS)
    await _delete_tokens_older_than(session, progress, OtpToken, cutoff, batch_size)


async def _purge_account_status_audit(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    cutoff, batch_size = _cutoff(config, ACCOUNT_STATUS_AUDIT_CLEANUP_DAYS)
    audit_log = AccountStatusAuditLog(session)
    while True:
        deleted = await audit_log.purge_batch(older_than=cutoff, limit=batch_size)
        if deleted == 0:
            break
        await session.commit()
        progress.records += deleted
        if deleted < batch_size:
            break


async def _purge_job_execution_audit(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    cutoff, batch_size = _cutoff(config, JOB_EXECUTION_AUDIT_CLEANUP_DAYS)
    execution_log = JobExecutionLog(session)
    while True:
        deleted = await execution_log.purge_batch(older_than=cutoff.date(), limit=batch_size)
        if deleted == 0:
            break
        await session.commit()
        progress.records += deleted
        if deleted < batch_size:
            break


async def _delete_account_graph(session: AsyncSession, account_ids: list[UUID]) -> None:
    """Delete accounts with their tokens, audit rows, profiles and contacts."""

    customer_rows = (
        await session.execute(
            select(Customer.id, Customer.email_id, Customer.phone_id)
            .join(CustomerAccount, CustomerAccount.customer_id == Customer.id)
            .where(CustomerAccount.id.in_(account_ids))
        )
    ).all()
    customer_ids = [row.id for row in customer_rows]
    email_ids = [row.email_id for row in customer_rows if row.email_id is not None]
    phone_ids = [row.phone_id for row in customer_rows if row.phone_id is not None]

    statements = [
        delete(PasswordResetToken).where(PasswordResetToken.account_id.in_(account_ids)),
        delete(AccountStatusAudit).where(AccountStatusAudit.account_id.in_(account_ids)),
        delete(CustomerAccount).where(CustomerAccount.id.in_(account_ids)),
        delete(Customer).where(Customer.id.in_(customer_ids)),
        delete(OtpToken).where(
            or_(OtpToken.customer_email_id.in_(email_ids), OtpToken.customer_phone_id.in_(phone_ids))
        ),
        delete(CustomerEmail).where(CustomerEmail.id.in_(email_ids)),
        delete(CustomerPhone).where(CustomerPhone.id.in_(phone_ids)),
    ]
    for statement in statements:
        await session.execute(statement.execution_options(synchronize_session=False))


async def _purge_unverified_accounts(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    cutoff, batch_size = _cutoff(config, UNVERIFIED_ACCOUNT_CLEANUP_DAYS)
    # Accounts that ever logged in are kept whatever their verification state.
    ids_stmt = (
        select(CustomerAccount.id)
        .where(
            CustomerAccount.verification_status == AccountVerificationStatus.UNVERIFIED,
            CustomerAccount.last_login_at.is_(None),
            CustomerAccount.created_at < cutoff,
        )
        .order_by(CustomerAccount.id)
        .limit(batch_size)
    )
    while True:
        account_ids = list((await session.execute(ids_stmt)).scalars())
        if not account_ids:
            break
        await _delete_account_graph(session, account_ids)
        await session.commit()
        progress.records += len(account_ids)
        logger.info("Unverified accounts deleted", count=len(account_ids))
        if len(account_ids) < batch_size:
            break


async def cleanup_password_reset_tokens(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Delete password reset tokens older than ``password_reset_token_cleanup_days``."""

    return await run_recorded_job(
        PASSWORD_RESET_TOKENS_JOB, _purge_password_reset_tokens, session_factory=session_factory
    )


async def cleanup_otp_tokens(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Delete OTP tokens older than ``otp_token_cleanup_days``."""

    return await run_recorded_job(OTP_TOKENS_JOB, _purge_otp_tokens, session_factory=session_factory)


async def cleanup_account_status_audit(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Delete status audit rows older than ``account_status_audit_cleanup_days``."""

    return await run_recorded_job(
        ACCOUNT_STATUS_AUDIT_JOB, _purge_account_status_audit, session_factory=session_factory
    )


async def cleanup_job_execution_audit(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Delete job execution rows dated before ``job_execution_audit_cleanup_days`` ago."""

    return await run_recorded_job(
        JOB_EXECUTION_AUDIT_JOB, _purge_job_execution_audit, session_factory=session_factory
    )


async def cleanup_unverified_accounts(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Delete never-used unverified accounts older than ``unverified_account_cleanup_days``."""

    return await run_recorded_job(
        UNVERIFIED_ACCOUNTS_JOB, _purge_unverified_accounts, session_factory=session_factory
    )


__all__ = [
    "ACCOUNT_STATUS_AUDIT_JOB",
    "JOB_EXECUTION_AUDIT_JOB",
    "OTP_TOKENS_JOB",
    "PASSWORD_RESET_TOKENS_JOB",
    "UNVERIFIED_ACCOUNTS_JOB",
    "cleanup_account_status_audit",
    "cleanup_job_execution_audit",
    "cleanup_otp_tokens",
    "cleanup_password_reset_tokens",
    "cleanup_unverified_accounts",
]
