"""Prometheus metrics definitions for lastpost.

Defines counters and histograms for monitoring a checking session:
- Item throughput by outcome
- Remote lookup attempts, retries and latency
- Inter-item politeness delays
- Checkpoint persistence health

Usage:
    from lastpost.observability.metrics import ITEMS_PROCESSED, LOOKUP_DURATION

    ITEMS_PROCESSED.labels(status="success").inc()

    with LOOKUP_DURATION.time():
        await provider.fetch_profile(identifier)
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    write_to_textfile,
)

# Private registry so tests and embedding applications do not collide
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

ITEMS_PROCESSED = Counter(
    name="lastpost_items_processed_total",
    documentation="Total number of identifiers processed",
    labelnames=["status"],  # success, failed
    registry=REGISTRY,
)

LOOKUP_ATTEMPTS = Counter(
    name="lastpost_lookup_attempts_total",
    documentation="Remote lookup attempts by outcome classification",
    labelnames=["classification"],
    registry=REGISTRY,
)

LOOKUP_RETRIES = Counter(
    name="lastpost_lookup_retries_total",
    documentation="Backoff waits scheduled before a retry",
    labelnames=["classification"],  # rate_limited, transient_failure
    registry=REGISTRY,
)

CHECKPOINT_OPERATIONS = Counter(
    name="lastpost_checkpoint_operations_total",
    documentation="Checkpoint store operations",
    labelnames=["operation", "status"],  # save/load/clear, success/failed
    registry=REGISTRY,
)

SESSION_EVENTS = Counter(
    name="lastpost_session_events_total",
    documentation="Terminal session events",
    labelnames=["event"],  # completed, stopped
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

LOOKUP_DURATION = Histogram(
    name="lastpost_lookup_duration_seconds",
    documentation="Duration of one logical lookup including retries",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)

INTER_ITEM_DELAY = Histogram(
    name="lastpost_inter_item_delay_seconds",
    documentation="Scheduled politeness delay between identifiers",
    buckets=(1, 2, 5, 7, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def write_metrics_file(path: str) -> None:
    """Write the registry for a node_exporter textfile collector.

    The file is written atomically, so a scraper never sees a partial dump.
    """
    write_to_textfile(path, REGISTRY)
