"""FFTT Smartping federation API (player rankings by license number)."""
from tournoi.services.fftt.client import BATCH_SIZE, NOT_FOUND, RankingClient
from tournoi.services.fftt.signing import generate_timestamp, sign

__all__ = ["RankingClient", "BATCH_SIZE", "NOT_FOUND", "generate_timestamp", "sign"]
