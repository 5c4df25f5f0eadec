"""
Display helpers for player lists (names, dates, ordering).

Dates follow the French short format used on the registration pages,
e.g. ``19 oct. 2026`` and ``19 oct. 2026 14:05``.
"""
import unicodedata
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from tournoi.models.player import Player

INVALID_DATE = "Invalid date"

_FR_MONTHS = [
    "janv.", "févr.", "mars", "avr.", "mai", "juin",
    "juil.", "août", "sept.", "oct.", "nov.", "déc.",
]


class SortKey(str, Enum):
    LAST_NAME = "lastName"
    FIRST_NAME = "firstName"
    REGISTRATION_DATE = "registrationDate"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _to_datetime(value: Union[datetime, str, None]) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date(value: Union[datetime, str, None]) -> str:
    moment = _to_datetime(value)
    if moment is None:
        return INVALID_DATE
    return f"{moment.day} {_FR_MONTHS[moment.month - 1]} {moment.year}"


def format_date_time(value: Union[datetime, str, None]) -> str:
    moment = _to_datetime(value)
    if moment is None:
        return INVALID_DATE
    return f"{format_date(moment)} {moment:%H:%M}"


def capitalize_first_letter(text: Optional[str]) -> str:
    """``"jEAN"`` -> ``"Jean"``"""
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()


def format_player_name(first_name: str, last_name: str) -> str:
    """
    Format a name as ``LASTNAME Firstname``.

    Examples:
        >>> format_player_name("marie", "Dupont ")
        'DUPONT Marie'
    """
    return f"{last_name.strip().upper()} {capitalize_first_letter(first_name.strip())}"


def _collation_key(text: str) -> str:
    # Accent- and case-insensitive, so "Émile" sorts next to "Emile"
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def sort_players(
    players: List["Player"],
    key: SortKey = SortKey.LAST_NAME,
    direction: SortDirection = SortDirection.ASC,
) -> List["Player"]:
    """
    Return a sorted copy of ``players``.

    Players without a registration date sort first in ascending order.
    The sort is stable, so equal keys keep their input order.
    """
    key = SortKey(key)
    reverse = SortDirection(direction) is SortDirection.DESC

    if key is SortKey.REGISTRATION_DATE:
        def sort_key(player: "Player"):
            moment = player.registration_date
            return (moment is not None, moment.timestamp() if moment else 0.0)
    elif key is SortKey.FIRST_NAME:
        def sort_key(player: "Player"):
            return _collation_key(player.first_name)
    else:
        def sort_key(player: "Player"):
            return _collation_key(player.last_name)

    return sorted(players, key=sort_key, reverse=reverse)
