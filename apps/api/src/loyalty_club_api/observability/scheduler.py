"""In-process metrics for the maintenance job scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Dict

from loyalty_club_api.db.base import utcnow


@dataclass
class MaintenanceJobSnapshot:
    """Serializable snapshot of one scheduled job."""

    job_id: str
    task: str
    totals: Dict[str, int]
    last_started_at: datetime | None
    last_completed_at: datetime | None
    last_error: str | None
    last_attempts: int
    last_records_processed: int | None

    def as_dict(self) -> Dict[str, object]:
        return {
            "job_id": self.job_id,
            "task": self.task,
            "totals": self.totals,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_completed_at": self.last_completed_at.isoformat() if self.last_completed_at else None,
            "last_error": self.last_error,
            "last_attempts": self.last_attempts,
            "last_records_processed": self.last_records_processed,
        }


@dataclass
class SchedulerSnapshot:
    totals: Dict[str, int]
    jobs: Dict[str, MaintenanceJobSnapshot]

    def as_dict(self) -> Dict[str, object]:
        return {
            "totals": self.totals,
            "jobs": {job_id: snapshot.as_dict() for job_id, snapshot in self.jobs.items()},
        }


@dataclass
class _JobState:
    job_id: str
    task: str
    runs: int = 0
    success: int = 0
    reported_failures: int = 0
    run_failures: int = 0
    attempt_failures: int = 0
    retries: int = 0
    last_started_at: datetime | None = None
    last_completed_at: datetime | None = None
    last_error: str | None = None
    last_attempts: int = 0
    last_records_processed: int | None = None

    def snapshot(self) -> MaintenanceJobSnapshot:
        return MaintenanceJobSnapshot(
            job_id=self.job_id,
            task=self.task,
            totals={
                "runs": self.runs,
                "success": self.success,
                "reported_failures": self.reported_failures,
                "run_failures": self.run_failures,
                "attempt_failures": self.attempt_failures,
                "retries": self.retries,
            },
            last_started_at=self.last_started_at,
            last_completed_at=self.last_completed_at,
            last_error=self.last_error,
            last_attempts=self.last_attempts,
            last_records_processed=self.last_records_processed,
        )


class SchedulerMetricsStore:
    """Tracks dispatches, retries and outcomes of scheduled maintenance jobs.

    A *reported* failure is a job that ran to completion and recorded
    ``success=false`` in its execution row. A *run* failure is an exception
    that escaped every retry, such as a lost database connection.
    """

    # meta: observability: maintenance-scheduler

    def __init__(self) -> None:
        self._lock = Lock()
        self._jobs: Dict[str, _JobState] = {}

    def reset(self) -> None:
        with self._lock:
            self._jobs.clear()

    def _state(self, job_id: str, task: str) -> _JobState:
        state = self._jobs.get(job_id)
        if state is None:
            state = _JobState(job_id=job_id, task=task)
            self._jobs[job_id] = state
        return state

    def record_dispatch(self, job_id: str, task: str) -> None:
        with self._lock:
            state = self._state(job_id, task)
            state.runs += 1
            state.last_started_at = utcnow()
            state.last_completed_at = None
            state.last_attempts = 0

    def record_attempt_failure(self, job_id: str, task: str, *, attempts: int, error: str) -> None:
        with self._lock:
            state = self._state(job_id, task)
            state.attempt_failures += 1
            state.last_error = error
            state.last_attempts = attempts

    def record_retry(self, job_id: str, task: str, *, attempts: int) -> None:
        with self._lock:
            state = self._state(job_id, task)
            state.retries += 1
            state.last_attempts = attempts

    def record_completion(self, job_id: str, task: str, *, attempts: int, summary: Dict[str, object]) -> None:
        with self._lock:
            state = self._state(job_id, task)
            state.last_completed_at = utcnow()
            state.last_attempts = attempts
            records = summary.get("records_processed")
            state.last_records_processed = records if isinstance(records, int) else None
            if summary.get("success", True):
                state.success += 1
                state.last_error = None
            else:
                state.reported_failures += 1
                error = summary.get("error")
                state.last_error = str(error) if error is not None else None

    def record_run_failure(self, job_id: str, task: str, *, attempts: int, error: str) -> None:
        with self._lock:
            state = self._state(job_id, task)
            state.run_failures += 1
            state.last_completed_at = utcnow()
            state.last_error = error
            state.last_attempts = attempts

    def snapshot(self) -> SchedulerSnapshot:
        with self._lock:
            jobs = {job_id: state.snapshot() for job_id, state in self._jobs.items()}
        totals: Dict[str, int] = {}
        for job in jobs.values():
            for key, value in job.totals.items():
                totals[key] = totals.get(key, 0) + value
        return SchedulerSnapshot(totals=totals, jobs=jobs)


_SCHEDULER_STORE = SchedulerMetricsStore()


def get_scheduler_metrics_store() -> SchedulerMetricsStore:
    return _SCHEDULER_STORE


__all__ = [
    "MaintenanceJobSnapshot",
    "SchedulerMetricsStore",
    "SchedulerSnapshot",
    "get_scheduler_metrics_store",
]
