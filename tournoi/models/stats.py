"""Tournament statistics payloads."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from tournoi.models.player import CamelModel


class CategoryCount(CamelModel):
    category_id: str
    label: str
    count: int


class ClubCount(CamelModel):
    club: str
    count: int


class DailyCount(CamelModel):
    date: str  # ISO day, YYYY-MM-DD
    count: int


class TournamentStats(CamelModel):
    total_players: int
    by_category: List[CategoryCount] = Field(default_factory=list)
    by_club: List[ClubCount] = Field(default_factory=list)
    registration_timeline: List[DailyCount] = Field(default_factory=list)
    last_updated: datetime


class StatsResponse(TournamentStats):
    from_cache: bool = False
    warning: Optional[str] = None
