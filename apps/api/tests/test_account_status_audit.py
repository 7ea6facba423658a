from datetime import timedelta

import pytest

from loyalty_club_api.db.base import ensure_utc, utcnow
from loyalty_club_api.models.account import AccountActivityStatus
from loyalty_club_api.services.accounts import AccountStatusAuditLog, CustomerAccountService


@pytest.mark.asyncio
async def test_status_transitions_are_audited_in_order(session_factory, create_account) -> None:
    account = await create_account(email="cycle@x.com")

    async with session_factory() as session:
        service = CustomerAccountService(session)
        await service.update_activity_status(account.id, AccountActivityStatus.INACTIVE)
        await service.update_activity_status(account.id, AccountActivityStatus.SUSPENDED)
        await service.update_activity_status(account.id, AccountActivityStatus.ACTIVE)

    async with session_factory() as session:
        rows = await AccountStatusAuditLog(session).list_for_account(account.id)

    assert [(row.old_status, row.new_status) for row in rows] == [
        (AccountActivityStatus.ACTIVE, AccountActivityStatus.INACTIVE),
        (AccountActivityStatus.INACTIVE, AccountActivityStatus.SUSPENDED),
        (AccountActivityStatus.SUSPENDED, AccountActivityStatus.ACTIVE),
    ]


@pytest.mark.asyncio
async def test_unchanged_status_writes_no_audit_row(session_factory, create_account) -> None:
    account = await create_account(email="same@x.com")

    async with session_factory() as session:
        service = CustomerAccountService(session)
        await service.update_activity_status(account.id, AccountActivityStatus.ACTIVE)
        await service.update_activity_status(account.id, AccountActivityStatus.SUSPENDED)
        await service.update_activity_status(account.id, AccountActivityStatus.SUSPENDED)

    async with session_factory() as session:
        assert await AccountStatusAuditLog(session).count_for_account(account.id) == 1


@pytest.mark.asyncio
async def test_record_login_does_not_touch_audit(session_factory, create_account) -> None:
    account = await create_account(email="login@x.com")
    login_at = utcnow() - timedelta(minutes=5)

    async with session_factory() as session:
        updated = await CustomerAccountService(session).record_login(account.id, at=login_at)

    assert ensure_utc(updated.last_login_at) == login_at
    async with session_factory() as session:
        assert await AccountStatusAuditLog(session).count_for_account(account.id) == 0


@pytest.mark.asyncio
async def test_append_requires_a_transition(session_factory, create_account) -> None:
    account = await create_account(email="guard@x.com")

    async with session_factory() as session:
        with pytest.raises(ValueError):
            AccountStatusAuditLog(session).append(
                account.id,
                AccountActivityStatus.ACTIVE,
                AccountActivityStatus.ACTIVE,
            )
