"""Prometheus metrics for renewals, validity checks, plan reconciliation and blob storage"""

from prometheus_client import Counter, Histogram

# Renewal metrics
renewal_counter = Counter(
    "court_monitor_renewals_total",
    "Contract renewal attempts",
    ["outcome"],  # renewed | duplicate
)

validity_check_counter = Counter(
    "court_monitor_validity_checks_total",
    "Contract validity calculations",
    ["status"],  # active | expired | indeterminate
)

# Payment plan metrics
plan_recompute_counter = Counter(
    "court_monitor_plan_recomputations_total",
    "Payment plan total recomputations",
)

# Blob storage metrics
document_store_failures_counter = Counter(
    "document_store_failures_total",
    "Failed blob store operations",
    ["operation"],  # upload | delete
)

document_store_latency_histogram = Histogram(
    "document_store_latency_seconds",
    "Blob store operation time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_validity(status: str) -> None:
    """Record the outcome bucket of a validity calculation"""
    validity_check_counter.labels(status=status).inc()


def record_renewal(duplicate: bool) -> None:
    """Record a renewal attempt that either committed or hit a same-day duplicate"""
    renewal_counter.labels(outcome="duplicate" if duplicate else "renewed").inc()
