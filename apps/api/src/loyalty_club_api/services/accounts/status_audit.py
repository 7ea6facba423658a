"""Insert-only log of account activity-status transitions."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.models.account import AccountActivityStatus
from loyalty_club_api.models.audit import AccountStatusAudit


class AccountStatusAuditLog:
    """Append and read status transitions; rows are never updated.

    ``purge_batch`` exists for the retention job only.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def append(
        self,
        account_id: UUID,
        old_status: AccountActivityStatus,
        new_status: AccountActivityStatus,
    ) -> AccountStatusAudit:
        if old_status == new_status:
            raise ValueError("Status audit rows require a transition")
        row = AccountStatusAudit(account_id=account_id, old_status=old_status, new_status=new_status)
        self._session.add(row)
        return row

    async def list_for_account(self, account_id: UUID) -> list[AccountStatusAudit]:
        """Return transitions oldest first."""

        stmt = (
            select(AccountStatusAudit)
            .where(AccountStatusAudit.account_id == account_id)
            .order_by(AccountStatusAudit.created_at.asc(), AccountStatusAudit.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def count_for_account(self, account_id: UUID) -> int:
        stmt = select(func.count(AccountStatusAudit.id)).where(AccountStatusAudit.account_id == account_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def purge_batch(self, *, older_than: datetime, limit: int) -> int:
        """Delete up to ``limit`` rows created strictly before ``older_than``."""

        ids_stmt = (
            select(AccountStatusAudit.id)
            .where(AccountStatusAudit.created_at < older_than)
            .order_by(AccountStatusAudit.id)
            .limit(limit)
        )
        ids = list((await self._session.execute(ids_stmt)).scalars())
        if not ids:
            return 0
        await self._session.execute(
            delete(AccountStatusAudit)
            .where(AccountStatusAudit.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return len(ids)


__all__ = ["AccountStatusAuditLog"]
