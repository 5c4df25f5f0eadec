#!/usr/bin/env python3
"""
Standalone runner for the registration refresh scheduler.

Use this when the API runs with SCHEDULER_ENABLED=false (for example
several API workers sharing one Redis cache) and a single process should
own the periodic refresh. It can be run via systemd, supervisor, or
directly.

Usage:
    python run_scheduler.py              # Run in foreground
    python run_scheduler.py --once       # Run one refresh and exit
    python run_scheduler.py --list-jobs  # Show the configured job and exit
"""
import asyncio
import argparse
import json
import signal
import sys

from tournoi.core.config import settings
from tournoi.core.logging import configure_logging, get_logger
from tournoi.core.scheduler import REFRESH_JOB_ID, RefreshScheduler
from tournoi.services.container import build_services

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the refresh scheduler."""

    def __init__(self):
        self.scheduler: RefreshScheduler = None
        self.shutdown = asyncio.Event()

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")

        container = build_services(settings)
        self.scheduler = RefreshScheduler(
            container.registration_service.run_scheduled_refresh,
            interval_seconds=settings.REFRESH_INTERVAL_SECONDS,
        )
        await self.scheduler.start()

        logger.info("Scheduler is now running, press Ctrl+C to stop")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        await self.shutdown.wait()

        # Cleanup
        await self.scheduler.stop()
        await container.close()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("Shutdown signal received")
        self.shutdown.set()


async def run_once() -> bool:
    """Run a single refresh and print its result."""
    container = build_services(settings)
    try:
        result = await container.registration_service.run_scheduled_refresh()
    finally:
        await container.close()

    print(json.dumps(result, indent=2))
    return bool(result.get("success"))


def list_jobs():
    print(f"{REFRESH_JOB_ID}: refresh players cache every {settings.REFRESH_INTERVAL_SECONDS}s")
    print(f"  grouping: {settings.RECONCILE_GROUP_BY}, cache ttl: {settings.CACHE_TTL}s, store: {settings.KV_BACKEND}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the tournament registrations refresh scheduler"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one refresh and exit (non-zero status on failure)"
    )
    parser.add_argument(
        "--list-jobs",
        action="store_true",
        help="List the scheduled job and exit"
    )
    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    if args.once:
        return 0 if asyncio.run(run_once()) else 1

    runner = SchedulerRunner()
    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
