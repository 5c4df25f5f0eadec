"""
Tournament categories and product-name matching.

Each HelloAsso product (line item) names the table the player signed up
for; the patterns below map those free-text names onto the fixed set of
categories. Patterns are tried in ``sort_order`` and the first match wins.
"""
import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    pattern: re.Pattern
    sort_order: int


CATEGORIES: List[Category] = [
    Category("500-799", "500-799", re.compile(r"500[- ]?799|tableau\s*1", re.IGNORECASE), 1),
    Category("500-999", "500-999", re.compile(r"500[- ]?999|tableau\s*2", re.IGNORECASE), 2),
    Category("500-1199", "500-1199", re.compile(r"500[- ]?1199|tableau\s*3", re.IGNORECASE), 3),
    Category("500-1399", "500-1399", re.compile(r"500[- ]?1399|tableau\s*4", re.IGNORECASE), 4),
    Category("500-1799", "500-1799", re.compile(r"500[- ]?1799|tableau\s*5", re.IGNORECASE), 5),
    Category("tc-feminin", "TC Féminin", re.compile(r"f[eé]minin|tc\s*f|women", re.IGNORECASE), 6),
]

_BY_ID = {category.id: category for category in CATEGORIES}


def sorted_categories() -> List[Category]:
    """Categories in display order (does not mutate ``CATEGORIES``)."""
    return sorted(CATEGORIES, key=lambda c: c.sort_order)


def match_category(product_name: Optional[str]) -> Optional[str]:
    """
    Map a product name to a category ID.

    Examples:
        >>> match_category("Tableau 1")
        '500-799'
        >>> match_category("Tableau 500-1199 (samedi)")
        '500-1199'
        >>> match_category("obligatoire - informations complémentaires") is None
        True
    """
    if not product_name:
        return None

    for category in sorted_categories():
        if category.pattern.search(product_name):
            return category.id
    return None


def sort_category_ids(category_ids) -> List[str]:
    """Deduplicate and order category IDs by display rank; unknown IDs are dropped."""
    return sorted(
        {cid for cid in category_ids if cid in _BY_ID},
        key=lambda cid: _BY_ID[cid].sort_order,
    )
