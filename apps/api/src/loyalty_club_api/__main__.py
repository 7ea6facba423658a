"""Command line entrypoint: run maintenance jobs once or start the scheduler."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from uuid import UUID

from loguru import logger

from loyalty_club_api import __version__
from loyalty_club_api.core.logging import configure_logging
from loyalty_club_api.core.settings import settings
from loyalty_club_api.db.session import async_session, engine
from loyalty_club_api.jobs.maintenance import MAINTENANCE_JOBS, run_all_cleanup_jobs
from loyalty_club_api.scheduling import MaintenanceJobScheduler
from loyalty_club_api.services.accounts import recompute_verification_and_username
from loyalty_club_api.services.configuration import BusinessConfigService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="loyalty_club_api", description="Loyalty club maintenance runtime")
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run one maintenance job once")
    run.add_argument("job", choices=sorted(MAINTENANCE_JOBS))

    commands.add_parser("run-all", help="Run every cleanup job once")

    schedule = commands.add_parser("schedule", help="Run the cron scheduler until interrupted")
    schedule.add_argument("--config", default=settings.maintenance_schedule_path, help="Schedule TOML path")

    recompute = commands.add_parser("recompute", help="Re-derive one customer's account fields")
    recompute.add_argument("customer_id", type=UUID)

    commands.add_parser("seed-config", help="Insert missing business config defaults")
    return parser.parse_args(argv)


async def _seed_config() -> dict[str, int]:
    async with async_session() as session:
        inserted = await BusinessConfigService(session).seed_defaults()
    return {"inserted": inserted}


def build_scheduler(config_path: Path, *, session_factory=async_session) -> MaintenanceJobScheduler | None:
    """Return the scheduler to run, or None when it is switched off."""

    if not settings.maintenance_scheduler_enabled:
        logger.info(
            "Maintenance job scheduler disabled",
            reason="maintenance_scheduler_enabled is false",
        )
        return None
    return MaintenanceJobScheduler(session_factory=session_factory, config_path=config_path)


async def _schedule(config_path: Path) -> None:
    scheduler = build_scheduler(config_path)
    if scheduler is None:
        return
    scheduler.start()
    logger.info("Maintenance job scheduler enabled", schedule_path=str(config_path))
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()


async def _dispatch(args: argparse.Namespace) -> object:
    try:
        if args.command == "run":
            return await MAINTENANCE_JOBS[args.job](session_factory=async_session)
        if args.command == "run-all":
            return await run_all_cleanup_jobs(session_factory=async_session)
        if args.command == "recompute":
            return await recompute_verification_and_username(args.customer_id, session_factory=async_session)
        if args.command == "seed-config":
            return await _seed_config()
        await _schedule(Path(args.config))
        return None
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(service_name=settings.service_name, environment=settings.environment, version=__version__)
    try:
        result = asyncio.run(_dispatch(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    if isinstance(result, dict):
        print(json.dumps(result, default=str, indent=2))
        if result.get("success") is False:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
