"""Nightly job moving long-idle accounts from ACTIVE to INACTIVE."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.db.base import utcnow
from loyalty_club_api.models.account import AccountActivityStatus, CustomerAccount
from loyalty_club_api.services.accounts import CustomerAccountService
from loyalty_club_api.services.configuration import (
    ACCOUNT_INACTIVITY_DAYS,
    INACTIVITY_BATCH_SIZE,
    ConfigSnapshot,
)
from .recorder import JobProgress, SessionFactory, run_recorded_job


# meta: job: mark-inactive-accounts

JOB_NAME = "mark-inactive-accounts"


async def _mark_inactive(session: AsyncSession, config: ConfigSnapshot, progress: JobProgress) -> None:
    inactivity_days = config.require_positive_int(ACCOUNT_INACTIVITY_DAYS)
    batch_size = config.require_positive_int(INACTIVITY_BATCH_SIZE)
    cutoff = utcnow() - timedelta(days=inactivity_days)
    accounts = CustomerAccountService(session)

    # Accounts that never logged in are left to the unverified-account cleanup.
    stmt = (
        select(CustomerAccount)
        .where(
            CustomerAccount.activity_status == AccountActivityStatus.ACTIVE,
            CustomerAccount.last_login_at.is_not(None),
            CustomerAccount.last_login_at < cutoff,
        )
        .order_by(CustomerAccount.id)
        .limit(batch_size)
    )
    while True:
        batch = list((await session.execute(stmt)).scalars())
        if not batch:
            break
        for account in batch:
            await accounts.apply_activity_status(account, AccountActivityStatus.INACTIVE)
        await session.commit()
        progress.records += len(batch)
        if len(batch) < batch_size:
            break


async def mark_inactive_accounts_batched(*, session_factory: SessionFactory) -> Dict[str, Any]:
    """Mark ACTIVE accounts idle past ``account_inactivity_days`` as INACTIVE."""

    return await run_recorded_job(JOB_NAME, _mark_inactive, session_factory=session_factory)


__all__ = ["JOB_NAME", "mark_inactive_accounts_batched"]
