"""Reconciled player entity and the API payloads built from it."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from tournoi.utils.formatters import format_date_time, format_player_name


class CamelModel(BaseModel):
    """Base for API payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(CamelModel):
    """
    A tournament participant, rebuilt from scratch on every reconciliation.

    ``id`` is the SHA-256 hex digest of the grouping key (normalised payer
    email, or order id in legacy mode) so it stays stable across refreshes
    and overrides keep applying.
    """

    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    license_number: str = ""
    club: Optional[str] = None
    club_code: Optional[str] = None
    official_points: Optional[int] = None
    categories: List[str] = Field(min_length=1)
    registration_date: Optional[datetime] = None

    @computed_field(alias="displayName")
    @property
    def display_name(self) -> str:
        """``LASTNAME Firstname``, as shown on the registration lists."""
        return format_player_name(self.first_name, self.last_name)

    @computed_field(alias="registeredOn")
    @property
    def registered_on(self) -> Optional[str]:
        if self.registration_date is None:
            return None
        return format_date_time(self.registration_date)


class PlayerOverride(CamelModel):
    """Manual correction for one player; unset fields leave the player unchanged."""

    license_number: Optional[str] = None
    club: Optional[str] = None
    official_points: Optional[int] = None


class PlayersSnapshot(CamelModel):
    """What the players cache entry holds."""

    players: List[Player] = Field(default_factory=list)
    last_updated: datetime
    warning: Optional[str] = None


class PlayersResponse(PlayersSnapshot):
    from_cache: bool = False


class RefreshResponse(CamelModel):
    success: bool
    message: str
    timestamp: datetime
