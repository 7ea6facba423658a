"""Run a maintenance job body and record exactly one execution row for it."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.db.base import utcnow
from loyalty_club_api.services.configuration import (
    ConfigSnapshot,
    ConfigurationError,
    load_config_snapshot,
)
from .execution_log import JobExecutionLog

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]


@dataclass(slots=True)
class JobProgress:
    """Records processed so far; survives a failure mid-run."""

    records: int = 0


JobBody = Callable[[AsyncSession, ConfigSnapshot, JobProgress], Awaitable[None]]


@dataclass(slots=True)
class JobOutcome:
    job_name: str
    execution_date: date
    success: bool
    records_processed: int
    execution_time_ms: int
    error_message: str | None = None

    def as_summary(self) -> Dict[str, Any]:
        return {
            "job": self.job_name,
            "execution_date": self.execution_date.isoformat(),
            "success": self.success,
            "records_processed": self.records_processed,
            "execution_time_ms": self.execution_time_ms,
            "error": self.error_message,
        }


async def open_session(session_factory: SessionFactory) -> AsyncSession:
    maybe_session = session_factory()
    return maybe_session if isinstance(maybe_session, AsyncSession) else await maybe_session


def is_connectivity_error(exc: BaseException) -> bool:
    """Errors the scheduler must see; a job row cannot be written after them."""

    if isinstance(exc, (DisconnectionError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    return False


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, ConfigurationError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


async def record_outcome(outcome: JobOutcome, *, session_factory: SessionFactory) -> None:
    """Write the run row in a fresh session so a failed job cannot roll it back."""

    session = await open_session(session_factory)
    async with session as managed_session:
        JobExecutionLog(managed_session).append(
            job_name=outcome.job_name,
            execution_date=outcome.execution_date,
            success=outcome.success,
            records_processed=outcome.records_processed,
            execution_time_ms=outcome.execution_time_ms,
            error_message=outcome.error_message,
        )
        await managed_session.commit()


async def run_recorded_job(
    job_name: str,
    body: JobBody,
    *,
    session_factory: SessionFactory,
) -> Dict[str, Any]:
    """Run ``body`` with a config snapshot, then record and return the outcome.

    Failures are captured into the row. Connectivity failures propagate
    without a row.
    """

    execution_date = utcnow().date()
    progress = JobProgress()
    started = time.perf_counter()
    error_message: str | None = None

    try:
        session = await open_session(session_factory)
        async with session as managed_session:
            config = await load_config_snapshot(managed_session)
            await body(managed_session, config, progress)
    except Exception as exc:
        if is_connectivity_error(exc):
            raise
        error_message = describe_failure(exc)
        if isinstance(exc, ConfigurationError):
            logger.warning("Maintenance job aborted by configuration", job=job_name, error=error_message)
        else:
            logger.exception("Maintenance job failed", job=job_name)

    outcome = JobOutcome(
        job_name=job_name,
        execution_date=execution_date,
        success=error_message is None,
        records_processed=progress.records,
        execution_time_ms=int((time.perf_counter() - started) * 1000),
        error_message=error_message,
    )
    await record_outcome(outcome, session_factory=session_factory)

    summary = outcome.as_summary()
    logger.bind(summary=summary).info(
        "Maintenance job finished",
        job=job_name,
        records_processed=outcome.records_processed,
    )
    return summary


__all__ = [
    "JobBody",
    "JobOutcome",
    "JobProgress",
    "SessionFactory",
    "describe_failure",
    "is_connectivity_error",
    "open_session",
    "record_outcome",
    "run_recorded_job",
]
