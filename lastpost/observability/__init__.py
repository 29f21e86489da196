"""Observability module: run IDs, structured logging, metrics.

Usage:
    from lastpost.observability import get_logger, run_id_context, ITEMS_PROCESSED

    with run_id_context():
        get_logger().info("session_started", total=10)
        ITEMS_PROCESSED.labels(status="success").inc()
"""

from lastpost.observability.context import (
    clear_run_id,
    get_run_id,
    run_id_context,
    set_run_id,
)
from lastpost.observability.logging import (
    add_run_id_processor,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from lastpost.observability.metrics import (
    # Counters
    ITEMS_PROCESSED,
    LOOKUP_ATTEMPTS,
    LOOKUP_RETRIES,
    CHECKPOINT_OPERATIONS,
    SESSION_EVENTS,
    # Histograms
    LOOKUP_DURATION,
    INTER_ITEM_DELAY,
    # Utilities
    get_metrics_text,
    write_metrics_file,
)

__all__ = [
    # Context
    "set_run_id",
    "get_run_id",
    "clear_run_id",
    "run_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "configure_from_settings",
    "add_run_id_processor",
    # Counters
    "ITEMS_PROCESSED",
    "LOOKUP_ATTEMPTS",
    "LOOKUP_RETRIES",
    "CHECKPOINT_OPERATIONS",
    "SESSION_EVENTS",
    # Histograms
    "LOOKUP_DURATION",
    "INTER_ITEM_DELAY",
    # Utilities
    "get_metrics_text",
    "write_metrics_file",
]
