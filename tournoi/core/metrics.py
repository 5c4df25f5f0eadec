"""
Prometheus metrics for the registrations API.

HTTP request metrics come from prometheus-fastapi-instrumentator (see
main.py); this module defines the application-level ones:
- refresh runs by trigger and outcome
- players in the last successful refresh
- HelloAsso / FFTT request outcomes
- FFTT lookups by result (cache hit, fetched, not found, failed)
- swallowed cache errors
"""
from prometheus_client import Counter, Gauge

refresh_runs_total = Counter(
    "refresh_runs_total",
    "Refresh pipeline runs",
    ["trigger", "status"]
)

refresh_players = Gauge(
    "refresh_players",
    "Players produced by the last successful refresh"
)

upstream_requests_total = Counter(
    "upstream_requests_total",
    "Requests sent to upstream APIs",
    ["service", "outcome"]
)

ranking_lookups_total = Counter(
    "ranking_lookups_total",
    "FFTT license lookups",
    ["result"]
)

cache_errors_total = Counter(
    "cache_errors_total",
    "Cache operations that failed and were swallowed",
    ["cache", "operation"]
)

scheduler_running = Gauge(
    "scheduler_running",
    "Whether the refresh scheduler is running (1) or not (0)"
)


def record_refresh(trigger: str, success: bool, player_count: int | None = None) -> None:
    """Count a refresh run and, on success, publish the player count."""
    refresh_runs_total.labels(trigger=trigger, status="success" if success else "failure").inc()
    if success and player_count is not None:
        refresh_players.set(player_count)


def record_upstream(service: str, outcome: str) -> None:
    upstream_requests_total.labels(service=service, outcome=outcome).inc()
