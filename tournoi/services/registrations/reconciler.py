"""
Turn HelloAsso line items into players.

A registration is spread over several items: one per table the player
entered ("Tableau 1", "500-999", ...) plus an information item whose
custom fields hold the license number, club and points. Items are
grouped per registrant, then each group collapses into one ``Player``.

Grouping modes:
- ``email`` (default): one player per payer email, so a person who paid
  in several orders is listed once. Club answers are upper-cased.
- ``order``: one player per order, club answers kept verbatim.
"""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from tournoi.core.logging import get_logger
from tournoi.models.helloasso import RawItem
from tournoi.models.player import Player
from tournoi.utils.categories import match_category, sort_category_ids
from tournoi.utils.validators import clean_license_number, parse_leading_int

logger = get_logger(__name__)


class GroupBy(str, Enum):
    EMAIL = "email"
    ORDER = "order"


def player_id(key: str) -> str:
    """SHA-256 hex digest of the grouping key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


@dataclass
class _Registration:
    """Accumulator for one group of items."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    date: Optional[datetime] = None
    license_number: Optional[str] = None
    club: Optional[str] = None
    official_points: Optional[int] = None
    categories: List[str] = field(default_factory=list)


class RegistrationReconciler:
    """
    Collapse raw items into players.

    Args:
        group_by: Grouping mode (``GroupBy`` or its string value)
    """

    def __init__(self, group_by: GroupBy = GroupBy.EMAIL):
        self.group_by = GroupBy(group_by)

    def group_key(self, item: RawItem) -> Optional[str]:
        """Key used to group ``item``, or None when it cannot be grouped."""
        if self.group_by is GroupBy.EMAIL:
            email = (item.payer.email if item.payer else None) or ""
            return email.strip().lower() or None

        order_id = item.order.id if item.order else None
        return str(order_id) if order_id else None

    def reconcile(self, items: List[RawItem]) -> List[Player]:
        """
        Build the player list.

        Players come out in the order their first item was seen. Groups
        without any recognised category or without a first name are dropped.
        """
        groups: Dict[str, _Registration] = {}
        skipped = 0

        for item in items:
            key = self.group_key(item)
            if key is None:
                skipped += 1
                continue
            self._absorb(groups.setdefault(key, _Registration()), item)

        players = []
        for key, registration in groups.items():
            if not registration.categories or not registration.first_name:
                logger.debug(f"Dropping registration without category or name ({self.group_by.value} group)")
                continue

            players.append(Player(
                id=player_id(key),
                first_name=registration.first_name,
                last_name=registration.last_name,
                email=registration.email or None,
                license_number=registration.license_number or "",
                club=registration.club,
                club_code=None,
                official_points=registration.official_points,
                categories=sort_category_ids(registration.categories),
                registration_date=registration.date,
            ))

        if skipped:
            logger.warning(f"Skipped {skipped} items without a {self.group_by.value}")
        logger.info(f"Reconciled {len(items)} items into {len(players)} players")
        return players

    def _absorb(self, registration: _Registration, item: RawItem) -> None:
        payer = item.payer
        if payer:
            registration.first_name = registration.first_name or (payer.first_name or "").strip()
            registration.last_name = registration.last_name or (payer.last_name or "").strip()
            registration.email = registration.email or (payer.email or "").strip()

        order_date = item.order.date if item.order else None
        if order_date and (registration.date is None or order_date < registration.date):
            registration.date = order_date

        category_id = match_category(item.name)
        if category_id:
            registration.categories.append(category_id)

        for custom_field in item.custom_fields:
            name = (custom_field.name or "").lower().strip()
            answer = (custom_field.answer or "").strip()
            if not answer:
                continue

            if "licence" in name or "license" in name:
                if registration.license_number is None:
                    registration.license_number = clean_license_number(answer)
            elif "club" in name:
                if registration.club is None:
                    registration.club = answer.upper() if self.group_by is GroupBy.EMAIL else answer
            elif "points" in name:
                if registration.official_points is None:
                    registration.official_points = parse_leading_int(answer)
