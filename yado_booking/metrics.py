"""
Prometheus metrics for quotes, reservations, and calls to external collaborators.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Metric Types:
    - Counter: Cumulative metrics that only increase (e.g., reservations created)
    - Histogram: Observations bucketed by value (e.g., Lark API latency)

Example:
    >>> from yado_booking.metrics import lark_api_latency, reservations_total
    >>> with lark_api_latency.labels(table="special_rates").time():
    ...     items = fetch_all_records(table_id, provider)
    >>> reservations_total.labels(channel="webhook", outcome="created").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Metrics
# =============================================================================

quotes_total = Counter(
    "yado_quotes_total",
    "Total number of price quotes computed",
    ["outcome"],
)
"""
Counter for price quotes.

Labels:
    outcome: priced or rejected (restriction or date-order rejection)
"""

reservations_total = Counter(
    "yado_reservations_total",
    "Total number of reservation attempts by outcome",
    ["channel", "outcome"],
)
"""
Counter for reservation attempts.

Labels:
    channel: webhook (pay later) or card (paid through Square)
    outcome: created, rejected, unavailable, failed
"""

skipped_records = Counter(
    "yado_skipped_records_total",
    "Records from the records backend skipped because they were malformed",
    ["table"],
)
"""
Counter for malformed external records.

Labels:
    table: reservations, special_rates, payment_masters
"""

# =============================================================================
# Records Backend (Lark) Metrics
# =============================================================================

lark_api_requests = Counter(
    "yado_lark_api_requests_total",
    "Total Lark Open API requests made",
    ["table", "status_code"],
)
"""
Counter for record-listing requests to Lark.

Labels:
    table: Lark table ID
    status_code: HTTP status code (e.g., "200", "429")
"""

lark_api_latency = Histogram(
    "yado_lark_api_latency_seconds",
    "Lark Open API request latency in seconds",
    ["table"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)
"""
Histogram for Lark request latency.

Buckets: 0.1s, 0.25s, 0.5s, 1s, 2.5s, 5s, 10s, +Inf
"""

token_refreshes = Counter(
    "yado_tenant_token_refreshes_total",
    "Total number of Lark tenant token refresh operations",
)

# =============================================================================
# Notification and Payment Metrics
# =============================================================================

notifications_total = Counter(
    "yado_notifications_total",
    "Total outbound notifications by channel and outcome",
    ["channel", "outcome"],
)
"""
Counter for outbound notifications.

Labels:
    channel: lark_webhook or email
    outcome: sent, failed, skipped
"""

payments_total = Counter(
    "yado_payments_total",
    "Total card payment attempts by outcome",
    ["outcome"],
)
"""
Counter for Square payment attempts.

Labels:
    outcome: completed, declined, error
"""
