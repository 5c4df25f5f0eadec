"""
Smartping request signature.

Every call carries ``serie`` (the application serial), ``tm`` (local time
as ``YYYYMMDDHHMMSS``) and ``tmc``, the hex MD5 of serial + password + tm.
MD5 is what the federation API requires; it is not used for anything else.
"""
import hashlib
from datetime import datetime
from typing import Dict


def generate_timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%d%H%M%S")


def sign(serial: str, password: str, timestamp: str) -> str:
    return hashlib.md5(f"{serial}{password}{timestamp}".encode("utf-8")).hexdigest()


def signed_params(serial: str, password: str, now: datetime) -> Dict[str, str]:
    """Authentication query parameters for a request made at ``now``."""
    timestamp = generate_timestamp(now)
    return {"serie": serial, "tm": timestamp, "tmc": sign(serial, password, timestamp)}
