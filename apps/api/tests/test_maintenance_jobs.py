from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import DisconnectionError

from loyalty_club_api.db.base import utcnow
from loyalty_club_api.jobs.maintenance import (
    JobExecutionLog,
    cleanup_account_status_audit,
    cleanup_job_execution_audit,
    cleanup_otp_tokens,
    cleanup_password_reset_tokens,
    cleanup_unverified_accounts,
    mark_inactive_accounts_batched,
    run_all_cleanup_jobs,
)
from loyalty_club_api.jobs.maintenance.recorder import run_recorded_job
from loyalty_club_api.models.account import AccountActivityStatus, AccountVerificationStatus, CustomerAccount
from loyalty_club_api.models.audit import AccountStatusAudit, JobExecutionAudit
from loyalty_club_api.models.contact import CustomerEmail
from loyalty_club_api.models.customer import Customer
from loyalty_club_api.models.token import EmailOtpTarget, OtpPurpose, OtpToken, PasswordResetToken
from loyalty_club_api.services.accounts import AccountStatusAuditLog
from loyalty_club_api.services.configuration import BusinessConfigService


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        return int((await session.execute(select(func.count()).select_from(model))).scalar_one())


async def _set_config(session_factory, key: str, value: object) -> None:
    async with session_factory() as session:
        await BusinessConfigService(session).set_value(key, value)


async def _drop_config(session_factory, key: str) -> None:
    async with session_factory() as session:
        await BusinessConfigService(session).delete(key)


async def _latest_row(session_factory, job_name: str) -> JobExecutionAudit | None:
    async with session_factory() as session:
        return await JobExecutionLog(session).latest_for(job_name, utcnow().date())


async def _add_otp_tokens(session_factory, email_id, ages_in_days: list[float]) -> None:
    now = utcnow()
    async with session_factory() as session:
        for index, age in enumerate(ages_in_days):
            session.add(
                OtpToken.for_target(
                    EmailOtpTarget(email_id=email_id),
                    otp_code=f"{index:06d}",
                    purpose=OtpPurpose.EMAIL_VERIFICATION,
                    expires_at=now + timedelta(minutes=10),
                    created_at=now - timedelta(days=age),
                )
            )
        await session.commit()


@pytest.mark.asyncio
async def test_unverified_account_cleanup_respects_age(seeded_config, create_account) -> None:
    now = utcnow()
    stale = await create_account(email="stale@x.com", created_at=now - timedelta(days=45))
    fresh = await create_account(email="fresh@x.com", created_at=now - timedelta(days=10))
    logged_in = await create_account(
        email="seen@x.com",
        created_at=now - timedelta(days=45),
        last_login_at=now - timedelta(days=40),
    )
    verified = await create_account(email="ok@x.com", email_verified=True, created_at=now - timedelta(days=45))

    async with seeded_config() as session:
        stale_customer = await session.get(Customer, stale.customer_id)
        stale_email_id = stale_customer.email_id
        session.add(PasswordResetToken(account_id=stale.id, token="stale-token", expires_at=now))
        session.add(
            AccountStatusAudit(
                account_id=stale.id,
                old_status=AccountActivityStatus.ACTIVE,
                new_status=AccountActivityStatus.SUSPENDED,
            )
        )
        await session.commit()
    await _add_otp_tokens(seeded_config, stale_email_id, [1])

    summary = await cleanup_unverified_accounts(session_factory=seeded_config)

    assert summary["success"] is True
    assert summary["records_processed"] == 1
    async with seeded_config() as session:
        remaining = set((await session.execute(select(CustomerAccount.id))).scalars())
        assert await session.get(Customer, stale.customer_id) is None
        assert await session.get(CustomerEmail, stale_email_id) is None
    assert remaining == {fresh.id, logged_in.id, verified.id}
    assert verified.verification_status is AccountVerificationStatus.EMAIL_VERIFIED
    assert await _count(seeded_config, PasswordResetToken) == 0
    assert await _count(seeded_config, AccountStatusAudit) == 0
    assert await _count(seeded_config, OtpToken) == 0

    row = await _latest_row(seeded_config, "cleanup-unverified-accounts")
    assert row.success is True
    assert row.records_processed == 1


@pytest.mark.asyncio
async def test_mark_inactive_with_missing_config_records_failure(seeded_config, create_account) -> None:
    idle = await create_account(email="idle@x.com", last_login_at=utcnow() - timedelta(days=100))
    await _drop_config(seeded_config, "account_inactivity_days")

    summary = await mark_inactive_accounts_batched(session_factory=seeded_config)

    assert summary["success"] is False
    assert summary["error"] == "Configuration missing: account_inactivity_days"
    async with seeded_config() as session:
        account = await session.get(CustomerAccount, idle.id)
    assert account.activity_status is AccountActivityStatus.ACTIVE
    row = await _latest_row(seeded_config, "mark-inactive-accounts")
    assert row.success is False
    assert row.records_processed == 0
    assert row.error_message == "Configuration missing: account_inactivity_days"


@pytest.mark.asyncio
async def test_mark_inactive_batches_and_audits_each_transition(seeded_config, create_account) -> None:
    now = utcnow()
    idle = [
        await create_account(email=f"idle{index}@x.com", last_login_at=now - timedelta(days=61 + index))
        for index in range(3)
    ]
    recent = await create_account(email="recent@x.com", last_login_at=now - timedelta(days=59))
    never = await create_account(email="never@x.com")
    await _set_config(seeded_config, "inactivity_batch_size", 2)

    summary = await mark_inactive_accounts_batched(session_factory=seeded_config)

    assert summary["success"] is True
    assert summary["records_processed"] == 3
    async with seeded_config() as session:
        statuses = {
            account.id: account.activity_status
            for account in (await session.execute(select(CustomerAccount))).scalars()
        }
        audit_log = AccountStatusAuditLog(session)
        audit_counts = [await audit_log.count_for_account(account.id) for account in idle]
    assert all(statuses[account.id] is AccountActivityStatus.INACTIVE for account in idle)
    assert statuses[recent.id] is AccountActivityStatus.ACTIVE
    assert statuses[never.id] is AccountActivityStatus.ACTIVE
    assert audit_counts == [1, 1, 1]

    rerun = await mark_inactive_accounts_batched(session_factory=seeded_config)
    assert rerun["records_processed"] == 0


@pytest.mark.asyncio
async def test_token_cleanups_use_strict_cutoffs_and_batches(seeded_config, create_account) -> None:
    account = await create_account(email="tokens@x.com")
    now = utcnow()
    async with seeded_config() as session:
        email_id = (await session.get(Customer, account.customer_id)).email_id
        for index, (age, used) in enumerate([(8, True), (8, False), (6.9, False)]):
            session.add(
                PasswordResetToken(
                    account_id=account.id,
                    token=f"reset-{index}",
                    expires_at=now + timedelta(hours=1),
                    used_at=now if used else None,
                    created_at=now - timedelta(days=age),
                )
            )
        await session.commit()
    await _add_otp_tokens(seeded_config, email_id, [7.01, 8, 9, 10, 11, 6.99])
    await _set_config(seeded_config, "cleanup_batch_size", 2)

    reset_summary = await cleanup_password_reset_tokens(session_factory=seeded_config)
    otp_summary = await cleanup_otp_tokens(session_factory=seeded_config)

    assert reset_summary["records_processed"] == 2
    assert otp_summary["records_processed"] == 5
    async with seeded_config() as session:
        tokens = list((await session.execute(select(PasswordResetToken.token))).scalars())
    assert tokens == ["reset-2"]
    assert await _count(seeded_config, OtpToken) == 1


@pytest.mark.asyncio
async def test_audit_cleanups_delete_only_older_rows(seeded_config, create_account) -> None:
    account = await create_account(email="audit@x.com")
    now = utcnow()
    today = now.date()
    async with seeded_config() as session:
        for age in (400, 366, 300):
            session.add(
                AccountStatusAudit(
                    account_id=account.id,
                    old_status=AccountActivityStatus.ACTIVE,
                    new_status=AccountActivityStatus.INACTIVE,
                    created_at=now - timedelta(days=age),
                )
            )
        log = JobExecutionLog(session)
        for age in (91, 90, 10):
            log.append(
                job_name="mark-inactive-accounts",
                execution_date=today - timedelta(days=age),
                success=True,
                records_processed=0,
                execution_time_ms=1,
            )
        await session.commit()

    status_summary = await cleanup_account_status_audit(session_factory=seeded_config)
    execution_summary = await cleanup_job_execution_audit(session_factory=seeded_config)

    assert status_summary["records_processed"] == 2
    assert execution_summary["records_processed"] == 1
    assert await _count(seeded_config, AccountStatusAudit) == 1
    async with seeded_config() as session:
        dates = set(
            (
                await session.execute(
                    select(JobExecutionAudit.execution_date).where(
                        JobExecutionAudit.job_name == "mark-inactive-accounts"
                    )
                )
            ).scalars()
        )
    assert dates == {today - timedelta(days=90), today - timedelta(days=10)}


@pytest.mark.asyncio
async def test_master_job_isolates_failing_sub_job(seeded_config, create_account) -> None:
    account = await create_account(email="master@x.com")
    now = utcnow()
    async with seeded_config() as session:
        session.add(
            PasswordResetToken(
                account_id=account.id,
                token="old-reset",
                expires_at=now,
                created_at=now - timedelta(days=30),
            )
        )
        await session.commit()
    await _drop_config(seeded_config, "otp_token_cleanup_days")

    summary = await run_all_cleanup_jobs(session_factory=seeded_config)

    assert summary["success"] is False
    assert summary["error"] == "1 cleanup job(s) failed: cleanup-otp-tokens"
    assert summary["records_processed"] == 1
    assert [job["job"] for job in summary["jobs"]] == [
        "cleanup-password-reset-tokens",
        "cleanup-otp-tokens",
        "cleanup-account-status-audit",
        "cleanup-job-execution-audit",
        "cleanup-unverified-accounts",
    ]
    assert await _count(seeded_config, PasswordResetToken) == 0

    async with seeded_config() as session:
        rows = await JobExecutionLog(session).list_for_date(now.date())
    by_job = {row.job_name: row for row in rows}
    assert len(rows) == 6
    assert by_job["cleanup-otp-tokens"].success is False
    assert by_job["cleanup-otp-tokens"].error_message == "Configuration missing: otp_token_cleanup_days"
    assert by_job["cleanup-unverified-accounts"].success is True
    assert by_job["run-all-cleanup-jobs"].success is False
    assert "cleanup job(s) failed" in by_job["run-all-cleanup-jobs"].error_message


@pytest.mark.asyncio
async def test_repeated_runs_append_rows_and_latest_wins(seeded_config) -> None:
    await cleanup_otp_tokens(session_factory=seeded_config)
    await _set_config(seeded_config, "otp_token_cleanup_days", "soon")
    await cleanup_otp_tokens(session_factory=seeded_config)

    row = await _latest_row(seeded_config, "cleanup-otp-tokens")
    assert await _count(seeded_config, JobExecutionAudit) == 2
    assert row.success is False
    assert row.error_message == "Configuration invalid: otp_token_cleanup_days=soon"


@pytest.mark.asyncio
async def test_unexpected_errors_are_recorded_with_their_type(seeded_config) -> None:
    async def _broken(session, config, progress) -> None:
        progress.records += 2
        raise ValueError("bad row")

    summary = await run_recorded_job("adhoc-job", _broken, session_factory=seeded_config)

    assert summary["success"] is False
    assert summary["error"] == "ValueError: bad row"
    assert summary["records_processed"] == 2
    row = await _latest_row(seeded_config, "adhoc-job")
    assert row.error_message == "ValueError: bad row"


@pytest.mark.asyncio
async def test_connectivity_errors_propagate_without_a_row(seeded_config) -> None:
    async def _disconnected(session, config, progress) -> None:
        raise DisconnectionError("connection lost")

    with pytest.raises(DisconnectionError):
        await run_recorded_job("adhoc-job", _disconnected, session_factory=seeded_config)

    assert await _count(seeded_config, JobExecutionAudit) == 0
