"""
Prometheus counters for the session and search layers.

The client runs in a single process, so plain in-process
``prometheus_client`` counters are enough.  They live on a
dedicated ``CollectorRegistry`` so an embedding application's
default registry is left untouched.

Usage:
    Call the ``record_*`` helpers from the owning component.
    ``generate_metrics()`` renders the exposition format for
    whoever wants to scrape or dump it.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, generate_latest

#: Dedicated registry; never the process-wide default.
REGISTRY = CollectorRegistry()

TOKEN_REFRESHES = Counter(
    "insightlens_token_refreshes",
    "Refresh-credential exchanges by outcome.",
    ["outcome"],
    registry=REGISTRY,
)

SESSION_EXPIRATIONS = Counter(
    "insightlens_session_expirations",
    "Irrecoverable auth failures that forced a return to login.",
    registry=REGISTRY,
)

SEARCH_DISPATCHES = Counter(
    "insightlens_search_dispatches",
    "Search requests sent after the debounce window.",
    registry=REGISTRY,
)

SEARCH_OUTCOMES = Counter(
    "insightlens_search_outcomes",
    "Applied search outcomes by result kind.",
    ["outcome"],
    registry=REGISTRY,
)

SEARCHES_SUPERSEDED = Counter(
    "insightlens_searches_superseded",
    "Search responses discarded because a newer query was committed.",
    registry=REGISTRY,
)


def record_token_refresh(*, success: bool) -> None:
    """Count one refresh exchange.

    Args:
        success: ``True`` if a new access credential was stored.
    """
    TOKEN_REFRESHES.labels(outcome="success" if success else "failure").inc()


def record_session_expired() -> None:
    """Count one forced return to login."""
    SESSION_EXPIRATIONS.inc()


def record_search_dispatched() -> None:
    """Count one search request leaving the debounce window."""
    SEARCH_DISPATCHES.inc()


def record_search_outcome(outcome: str) -> None:
    """Count an applied search outcome (``success`` or an error kind)."""
    SEARCH_OUTCOMES.labels(outcome=outcome).inc()


def record_search_superseded() -> None:
    """Count a response dropped by the generation check."""
    SEARCHES_SUPERSEDED.inc()


def generate_metrics() -> bytes:
    """Render Prometheus exposition format for client metrics.

    Returns:
        UTF-8 bytes ready to be served or written out.
    """
    return generate_latest(REGISTRY)
