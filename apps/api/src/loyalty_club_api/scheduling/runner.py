"""Scheduler runtime for maintenance jobs."""

from __future__ import annotations

import asyncio
import inspect
import random
from importlib import import_module
from pathlib import Path
from types import ModuleType
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from loyalty_club_api.observability.scheduler import SchedulerMetricsStore, get_scheduler_metrics_store
from .config import JobDefinition, ScheduleConfig, load_job_definitions

SessionFactory = Callable[[], Awaitable[Any]] | Callable[[], Any]
JobCallable = Callable[..., Awaitable[Any]]


def resolve_task(task: str) -> JobCallable:
    """Import ``package.module.function`` and check it is a coroutine function."""

    module_name, _, attr = task.rpartition(".")
    if not module_name:
        raise ValueError(f"Invalid task path: {task}")
    module: ModuleType = import_module(module_name)
    func = getattr(module, attr, None)
    if func is None:
        raise AttributeError(f"Task {task} not found")
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"Task {task} must be an async function")
    return func


class MaintenanceJobScheduler:
    """Register and run recurring maintenance jobs.

    Jobs record their own failures in ``job_execution_audit`` and return a
    summary, so only exceptions that escape a job (connectivity loss) are
    retried.
    """

    # meta: scheduler: account-maintenance

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        config_path: Path | None = None,
        config: ScheduleConfig | None = None,
        metrics: SchedulerMetricsStore | None = None,
    ) -> None:
        if config_path is None and config is None:
            raise ValueError("Either config_path or config is required")
        self._session_factory = session_factory
        self._config_path = config_path
        self._config = config
        self._scheduler: AsyncIOScheduler | None = None
        self._is_running = False
        self._metrics = metrics or get_scheduler_metrics_store()

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def config(self) -> ScheduleConfig:
        if self._config is None:
            if self._config_path is None:
                raise ValueError("Either config_path or config is required")
            self._config = load_job_definitions(self._config_path)
        return self._config

    def start(self) -> None:
        """Start the scheduler with the enabled jobs."""

        config = self.config
        timezone = ZoneInfo(config.timezone)
        scheduler = AsyncIOScheduler(timezone=timezone)

        enabled = [job for job in config.jobs if job.enabled]
        for job in enabled:
            func = resolve_task(job.task)
            trigger = CronTrigger.from_crontab(job.cron, timezone=timezone)
            scheduler.add_job(self._wrap_callable(func, job), trigger=trigger, id=job.id, replace_existing=True)
            logger.info("Registered maintenance job", job_id=job.id, task=job.task, cron=job.cron)

        scheduler.start()
        self._scheduler = scheduler
        self._is_running = True
        logger.info("Maintenance job scheduler started", jobs=len(enabled))

    async def stop(self) -> None:
        if not self._scheduler:
            return
        result = self._scheduler.shutdown(wait=False)
        if inspect.isawaitable(result):
            await result
        self._scheduler = None
        self._is_running = False
        logger.info("Maintenance job scheduler stopped")

    async def run_job_now(self, job_id: str) -> Any:
        """Run one configured job immediately with its retry policy."""

        for job in self.config.jobs:
            if job.id == job_id:
                return await self._wrap_callable(resolve_task(job.task), job)()
        raise KeyError(f"Unknown job id: {job_id}")

    def _wrap_callable(self, func: JobCallable, job: JobDefinition) -> Callable[[], Awaitable[Any]]:
        async def _runner() -> Any:
            self._metrics.record_dispatch(job.id, job.task)

            for attempt in range(1, job.max_attempts + 1):
                try:
                    summary = await func(session_factory=self._session_factory, **job.kwargs)
                except Exception as exc:
                    error_message = f"{type(exc).__name__}: {exc}"
                    self._metrics.record_attempt_failure(job.id, job.task, attempts=attempt, error=error_message)
                    if attempt >= job.max_attempts:
                        self._metrics.record_run_failure(job.id, job.task, attempts=attempt, error=error_message)
                        logger.exception(
                            "Scheduled job failed after retries",
                            job_id=job.id,
                            task=job.task,
                            attempts=attempt,
                        )
                        return None

                    delay = self._backoff_delay(job, attempt)
                    self._metrics.record_retry(job.id, job.task, attempts=attempt + 1)
                    logger.warning(
                        "Scheduled job retrying",
                        job_id=job.id,
                        task=job.task,
                        attempt=attempt + 1,
                        delay_seconds=delay,
                    )
                    if delay:
                        await asyncio.sleep(delay)
                    continue

                self._metrics.record_completion(
                    job.id,
                    job.task,
                    attempts=attempt,
                    summary=summary if isinstance(summary, dict) else {},
                )
                logger.info("Scheduled job completed", job_id=job.id, task=job.task, attempts=attempt)
                return summary
            return None

        return _runner

    @staticmethod
    def _backoff_delay(job: JobDefinition, attempt: int) -> float:
        delay = job.base_backoff_seconds * (job.backoff_multiplier ** (attempt - 1))
        if job.max_backoff_seconds:
            delay = min(delay, job.max_backoff_seconds)
        if job.jitter_seconds:
            delay += random.uniform(0, job.jitter_seconds)
        return max(delay, 0.0)

    def health(self) -> dict[str, object]:
        """Return scheduler health metadata suitable for diagnostics."""

        snapshot = self._metrics.snapshot()
        config_jobs = self._config.jobs if self._config else []
        jobs: list[dict[str, object]] = []
        for job in config_jobs:
            job_metrics = snapshot.jobs.get(job.id)
            jobs.append(
                {
                    "id": job.id,
                    "task": job.task,
                    "cron": job.cron,
                    "enabled": job.enabled,
                    "max_attempts": job.max_attempts,
                    "metrics": job_metrics.as_dict() if job_metrics else None,
                }
            )
        return {
            "running": self._is_running,
            "configured_jobs": len(config_jobs),
            "totals": snapshot.totals,
            "jobs": jobs,
        }


__all__ = ["MaintenanceJobScheduler", "resolve_task"]
