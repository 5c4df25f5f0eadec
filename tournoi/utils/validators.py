"""FFTT license number validation and lenient number parsing."""
import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s-]")
_LICENSE = re.compile(r"[0-9]{6,7}")


def validate_license_number(license_number: Optional[str]) -> bool:
    """A license is 6 or 7 digits once spaces and hyphens are removed."""
    if not license_number:
        return False
    cleaned = _SEPARATORS.sub("", license_number)
    return _LICENSE.fullmatch(cleaned) is not None


def clean_license_number(license_number: Optional[str]) -> Optional[str]:
    """
    Normalise a license number, or return None when it is invalid.

    Examples:
        >>> clean_license_number("12-3456")
        '123456'
        >>> clean_license_number(" 1 234 567 ")
        '1234567'
        >>> clean_license_number("12345") is None
        True
    """
    if not license_number:
        return None

    cleaned = _SEPARATORS.sub("", license_number)
    if not validate_license_number(cleaned):
        return None
    return cleaned


_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def parse_leading_int(value) -> Optional[int]:
    """
    Integer prefix of a free-text answer ("1234 pts" -> 1234), or None.

    Examples:
        >>> parse_leading_int(" 812.5")
        812
        >>> parse_leading_int("environ 900") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None
