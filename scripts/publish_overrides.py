#!/usr/bin/env python3
"""
Publish manual player corrections to the shared cache.

Reads an overrides JSON file (``{playerId: {licenseNumber?, club?,
officialPoints?}}``), drops invalid entries, and stores the result under
the ``player_overrides`` cache key so every API worker and the scheduler
apply it on their next read. With ``--clear`` the cache entry is
removed and processes fall back to OVERRIDES_FILE.

Usage:
    python scripts/publish_overrides.py data/overrides.json
    python scripts/publish_overrides.py --clear
"""
import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Add parent directory to path to import tournoi modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tournoi.core.config import settings
from tournoi.core.logging import configure_logging, get_logger
from tournoi.services.core.cache import CacheKeys
from tournoi.services.registrations.overrides import OverrideStore, parse_overrides
from tournoi.services.container import build_services

logger = get_logger(__name__)


async def publish(store: OverrideStore, file_path: Path) -> int:
    """
    Store the overrides read from ``file_path``.

    Returns:
        Number of overrides published

    Raises:
        ValueError: The file is not a JSON object, or the cache write failed
    """
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{file_path} must contain a JSON object keyed by player id")

    overrides = parse_overrides(raw)
    skipped = len(raw) - len(overrides)
    if skipped:
        logger.warning(f"Skipped {skipped} invalid override(s)")

    if not await store.save(overrides):
        raise ValueError("Could not write overrides to the cache")

    logger.info(f"Published {len(overrides)} override(s) from {file_path}")
    return len(overrides)


async def run(file_path: Path = None, clear: bool = False) -> int:
    container = build_services(settings)
    try:
        if clear:
            await container.cache.delete(CacheKeys.PLAYER_OVERRIDES)
            logger.info("Cleared published overrides")
            return 0
        return await publish(container.registration_service.overrides, file_path)
    finally:
        await container.close()


def main():
    parser = argparse.ArgumentParser(description="Publish player overrides to the shared cache")
    parser.add_argument("file", nargs="?", type=Path, help="Overrides JSON file")
    parser.add_argument("--clear", action="store_true", help="Remove published overrides")
    args = parser.parse_args()

    if not args.clear and args.file is None:
        parser.error("an overrides file is required unless --clear is given")

    configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    try:
        asyncio.run(run(args.file, args.clear))
    except (OSError, ValueError) as e:
        logger.error(f"Publishing overrides failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
