"""Prometheus metrics definitions for the Galaxy FDS client.

All metrics use the ``galaxy_fds_`` prefix. They are client-side counters
only: how many requests were signed (by mode), how many listing pages were
fetched, and how many service calls came back with a non-200 status.

Counters live in the global ``prometheus_client`` registry and are only
created by :func:`init_metrics`. Until then the module-level references
stay ``None`` and every recording site is a no-op.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# Signing counter  (labels: mode = header | query)
# ---------------------------------------------------------------------------
signatures_total: Counter | None = None

# ---------------------------------------------------------------------------
# Listing and service outcome counters
# ---------------------------------------------------------------------------
listing_pages_total: Counter | None = None
service_errors_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; only the first call registers collectors.
    """
    global _initialized
    global signatures_total, listing_pages_total, service_errors_total

    if _initialized:
        return

    signatures_total = Counter(
        "galaxy_fds_signatures_total",
        "Total requests signed, by signing mode",
        ["mode"],
    )

    listing_pages_total = Counter(
        "galaxy_fds_listing_pages_total",
        "Total object listing pages fetched",
    )

    service_errors_total = Counter(
        "galaxy_fds_service_errors_total",
        "Total non-200 service responses by operation",
        ["operation"],
    )

    _initialized = True


def record_signature(mode: str) -> None:
    if signatures_total is not None:
        signatures_total.labels(mode=mode).inc()


def record_listing_page() -> None:
    if listing_pages_total is not None:
        listing_pages_total.inc()


def record_service_error(operation: str) -> None:
    if service_errors_total is not None:
        service_errors_total.labels(operation=operation).inc()
