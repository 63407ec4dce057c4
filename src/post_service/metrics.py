"""
Prometheus metrics for the post service.

The announcement counters double as the outcome log for the fire-and-forget
publish: a post can be stored while its announcement is failed or unavailable.
"""

from prometheus_client import Counter, Histogram

# --- Store Metrics ---

STORE_CONNECT_ATTEMPTS_TOTAL = Counter(
    "post_store_connect_attempts_total",
    "Store connection attempts during bootstrap",
    ["outcome"],
)

STORE_STATEMENTS_TOTAL = Counter(
    "post_store_statements_total",
    "Store statements executed by request handlers",
    ["operation", "outcome"],
)

# --- Announcement Metrics ---

ANNOUNCEMENTS_TOTAL = Counter(
    "post_announcements_total",
    "Post-created announcements by outcome",
    ["queue", "outcome"],
)

ANNOUNCE_LATENCY_MS = Histogram(
    "post_announce_latency_ms",
    "Announcement publish latency in milliseconds",
    ["queue"],
    buckets=[1, 2.5, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
)


class MetricsRegistry:
    """Centralized access to the service metrics."""

    store_connect_attempts_total = STORE_CONNECT_ATTEMPTS_TOTAL
    store_statements_total = STORE_STATEMENTS_TOTAL
    announcements_total = ANNOUNCEMENTS_TOTAL
    announce_latency_ms = ANNOUNCE_LATENCY_MS


# Singleton instance
metrics_registry = MetricsRegistry()
