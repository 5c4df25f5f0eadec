"""
Registration pipeline.

Turns HelloAsso line items into enriched, corrected players and serves
them (and statistics derived from them) from the cache.
"""
from tournoi.services.registrations.overrides import OverrideStore, apply_overrides
from tournoi.services.registrations.reconciler import GroupBy, RegistrationReconciler
from tournoi.services.registrations.service import RegistrationService
from tournoi.services.registrations.stats import compute_stats

__all__ = [
    "GroupBy",
    "OverrideStore",
    "RegistrationReconciler",
    "RegistrationService",
    "apply_overrides",
    "compute_stats",
]
