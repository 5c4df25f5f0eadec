"""
Pydantic models.

- helloasso: registration platform payloads (raw items, orders, pagination, token)
- fftt: federation ranking payloads and ``PlayerRanking``
- player: reconciled ``Player``, overrides and players/refresh responses
- stats: tournament statistics
"""
from tournoi.models.fftt import PlayerRanking
from tournoi.models.helloasso import RawItem, Order
from tournoi.models.player import (
    Player,
    PlayerOverride,
    PlayersSnapshot,
    PlayersResponse,
    RefreshResponse,
)
from tournoi.models.stats import (
    CategoryCount,
    ClubCount,
    DailyCount,
    TournamentStats,
    StatsResponse,
)

__all__ = [
    "PlayerRanking",
    "RawItem",
    "Order",
    "Player",
    "PlayerOverride",
    "PlayersSnapshot",
    "PlayersResponse",
    "RefreshResponse",
    "CategoryCount",
    "ClubCount",
    "DailyCount",
    "TournamentStats",
    "StatsResponse",
]
