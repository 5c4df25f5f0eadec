"""
Manual player corrections.

Overrides are keyed by player id and only carry the fields to replace,
e.g. ``{"<sha256>": {"licenseNumber": "1234567", "officialPoints": 812}}``.
They are read from the raw ``player_overrides`` cache entry when one is
set, otherwise from the JSON file shipped with the deployment.
"""
import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from tournoi.core.logging import get_logger
from tournoi.models.player import Player, PlayerOverride
from tournoi.services.core.cache import CacheKeys, TTLCache

logger = get_logger(__name__)

Overrides = Dict[str, PlayerOverride]


def parse_overrides(raw) -> Overrides:
    """Validate a ``{player_id: {...}}`` mapping, skipping malformed entries."""
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring overrides: expected an object, got {type(raw).__name__}")
        return {}

    overrides: Overrides = {}
    for player_id, entry in raw.items():
        try:
            overrides[player_id] = PlayerOverride.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed override for {player_id}: {e}")
    return overrides


def apply_overrides(players: List[Player], overrides: Overrides) -> List[Player]:
    """
    Return players with their overrides applied.

    Only fields set on the override replace the player's values, so
    applying the same overrides twice gives the same result.
    """
    if not overrides:
        return list(players)

    result = []
    for player in players:
        override = overrides.get(player.id)
        if override is None:
            result.append(player)
            continue

        changes = override.model_dump(exclude_none=True)
        result.append(player.model_copy(update=changes))
    return result


class OverrideStore:
    """
    Source of the current overrides.

    Args:
        cache: Shared cache (raw ``player_overrides`` entry)
        file_path: JSON file used when the cache holds no overrides
    """

    def __init__(self, cache: TTLCache, file_path: Optional[str] = None):
        self.cache = cache
        self.file_path = Path(file_path) if file_path else None

    async def load(self) -> Overrides:
        raw = await self.cache.get_raw(CacheKeys.PLAYER_OVERRIDES)
        if raw is not None:
            return parse_overrides(raw)
        return self._load_file()

    def _load_file(self) -> Overrides:
        if self.file_path is None or not self.file_path.exists():
            return {}

        try:
            raw = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read overrides file {self.file_path}: {e}")
            return {}
        return parse_overrides(raw)

    async def save(self, overrides: Overrides) -> bool:
        """Publish overrides through the cache so every process picks them up."""
        payload = {
            player_id: override.model_dump(by_alias=True, exclude_none=True)
            for player_id, override in overrides.items()
        }
        return await self.cache.set_raw(CacheKeys.PLAYER_OVERRIDES, payload)
