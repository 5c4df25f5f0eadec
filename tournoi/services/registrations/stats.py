"""Tournament statistics derived from the player list."""
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from tournoi.models.player import Player
from tournoi.models.stats import CategoryCount, ClubCount, DailyCount, TournamentStats
from tournoi.utils.categories import sorted_categories

UNKNOWN_CLUB = "Unknown club"
TOP_CLUBS = 10


def compute_stats(players: List[Player], now: Optional[datetime] = None) -> TournamentStats:
    """
    Aggregate players into dashboard statistics.

    - ``by_category``: every category in display order, zero counts included
    - ``by_club``: the ten biggest clubs, largest first (ties keep first-seen order)
    - ``registration_timeline``: registrations per day (UTC), oldest first
    """
    category_counts = Counter(cid for player in players for cid in player.categories)
    by_category = [
        CategoryCount(category_id=category.id, label=category.label, count=category_counts.get(category.id, 0))
        for category in sorted_categories()
    ]

    club_counts = Counter(player.club or UNKNOWN_CLUB for player in players)
    by_club = [ClubCount(club=club, count=count) for club, count in club_counts.most_common(TOP_CLUBS)]

    day_counts = Counter(
        _day(player.registration_date) for player in players if player.registration_date is not None
    )
    timeline = [DailyCount(date=day, count=count) for day, count in sorted(day_counts.items())]

    return TournamentStats(
        total_players=len(players),
        by_category=by_category,
        by_club=by_club,
        registration_timeline=timeline,
        last_updated=now or datetime.now(timezone.utc),
    )


def _day(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()
