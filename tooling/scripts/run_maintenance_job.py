"""Run one account maintenance job once.

Intended usage: schedule via cron on hosts that do not run the in-process
scheduler, or invoke manually after changing retention thresholds.

Example:
    python tooling/scripts/run_maintenance_job.py run-all-cleanup-jobs
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from loguru import logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Execute a maintenance job once")
    parser.add_argument("job", help="Job name, e.g. mark-inactive-accounts or run-all-cleanup-jobs.")
    return parser.parse_args()


async def _run(job: str) -> dict[str, Any]:
    repo_root = Path(__file__).resolve().parents[2]
    api_src = repo_root / "apps" / "api" / "src"
    if str(api_src) not in sys.path:
        sys.path.insert(0, str(api_src))

    from loyalty_club_api.db.session import async_session, engine  # type: ignore import-position
    from loyalty_club_api.jobs.maintenance import MAINTENANCE_JOBS  # type: ignore import-position

    func = MAINTENANCE_JOBS.get(job)
    if func is None:
        raise SystemExit(f"Unknown job {job!r}; expected one of: {', '.join(sorted(MAINTENANCE_JOBS))}")
    try:
        return await func(session_factory=async_session)
    finally:
        await engine.dispose()


def main() -> int:
    args = parse_args()
    summary = asyncio.run(_run(args.job))
    if not summary.get("success"):
        logger.error("Maintenance job reported failure", job=args.job, error=summary.get("error"))
        return 1
    logger.success(
        "Maintenance job completed",
        job=args.job,
        records_processed=summary.get("records_processed", 0),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
