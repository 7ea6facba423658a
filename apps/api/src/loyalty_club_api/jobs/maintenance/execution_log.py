"""Insert-only trail of maintenance job runs."""

from __future__ import annotations

from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.models.audit import JobExecutionAudit


class JobExecutionLog:
    """Append and query job run rows; only the retention job purges them."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def append(
        self,
        *,
        job_name: str,
        execution_date: date,
        success: bool,
        records_processed: int,
        execution_time_ms: int,
        error_message: str | None = None,
    ) -> JobExecutionAudit:
        row = JobExecutionAudit(
            job_name=job_name,
            execution_date=execution_date,
            success=success,
            records_processed=records_processed,
            execution_time_ms=execution_time_ms,
            error_message=error_message,
        )
        self._session.add(row)
        return row

    async def latest_for(self, job_name: str, execution_date: date) -> JobExecutionAudit | None:
        """Newest row for the job on ``execution_date``; re-runs append, never overwrite."""

        stmt = (
            select(JobExecutionAudit)
            .where(
                JobExecutionAudit.job_name == job_name,
                JobExecutionAudit.execution_date == execution_date,
            )
            .order_by(JobExecutionAudit.created_at.desc(), JobExecutionAudit.id.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_date(self, execution_date: date) -> list[JobExecutionAudit]:
        stmt = (
            select(JobExecutionAudit)
            .where(JobExecutionAudit.execution_date == execution_date)
            .order_by(JobExecutionAudit.id.asc())
        )
        return list((await self._session.execute(stmt)).scalars())

    async def purge_batch(self, *, older_than: date, limit: int) -> int:
        """Delete up to ``limit`` rows whose execution date is strictly before ``older_than``."""

        ids_stmt = (
            select(JobExecutionAudit.id)
            .where(JobExecutionAudit.execution_date < older_than)
            .order_by(JobExecutionAudit.id)
            .limit(limit)
        )
        ids = list((await self._session.execute(ids_stmt)).scalars())
        if not ids:
            return 0
        await self._session.execute(
            delete(JobExecutionAudit)
            .where(JobExecutionAudit.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return len(ids)


__all__ = ["JobExecutionLog"]
