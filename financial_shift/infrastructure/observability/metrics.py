"""Prometheus metrics for calculations, request optimization and entity API health"""

from prometheus_client import Counter, Histogram, Gauge

# Calculation metrics
calculation_counter = Counter(
    "financial_shift_calculation_total",
    "Calculations served",
    ["operation", "outcome"],  # outcome: ok | invalid | error
)

# Rate limiter metrics
rate_limiter_queue_gauge = Gauge(
    "rate_limiter_queue_depth",
    "Requests waiting for a rate limiter token",
)

rate_limiter_wait_histogram = Histogram(
    "rate_limiter_wait_seconds",
    "Time queued requests waited for a token",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Deduplication metrics
dedup_hit_counter = Counter(
    "request_dedup_hits_total",
    "Requests served from an in-flight or cached result",
    ["source"],  # pending | cache
)

# Batching metrics
batch_size_histogram = Histogram(
    "request_batch_size",
    "Items per dispatched batch",
    buckets=[1, 2, 5, 10, 20, 50, 100],
)

# Retry / entity API metrics
retry_counter = Counter(
    "request_retries_total",
    "Retries scheduled after a retryable failure",
)

entity_api_failures_counter = Counter(
    "entity_api_failures_total",
    "Failed entity API calls",
    ["error_class"],  # retryable | terminal
)

entity_api_latency_histogram = Histogram(
    "entity_api_latency_seconds",
    "Entity API response time",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_calculation(operation: str, outcome: str) -> None:
    """Count a served calculation by outcome"""
    calculation_counter.labels(operation=operation, outcome=outcome).inc()
