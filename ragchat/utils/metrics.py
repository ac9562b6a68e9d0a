"""Prometheus metrics for retries, ingestion polling and response mining."""

from prometheus_client import Counter, Histogram

# Retry metrics
retry_latency_ms = Histogram(
    "ragchat_retry_latency_ms",
    "Latency of individual retried attempts in milliseconds",
    ["operation", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 30000],
)

retry_attempts_total = Counter(
    "ragchat_retry_attempts_total",
    "Total attempts made through the retry executor",
    ["operation", "outcome"],
)

# Ingestion metrics
ingestion_polls_total = Counter(
    "ragchat_ingestion_polls_total",
    "Total document status polls",
    ["outcome"],
)

ingestion_outcomes_total = Counter(
    "ragchat_ingestion_outcomes_total",
    "Terminal ingestion outcomes",
    ["status"],
)

# Mining metrics
responses_mined_total = Counter(
    "ragchat_responses_mined_total",
    "Assistant replies mined, by visualization source",
    ["source"],
)


class PrometheusRetryMetrics:
    """Prometheus-based retry metrics implementation."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record attempt latency."""
        retry_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)

    def inc_attempt(self, operation: str, outcome: str) -> None:
        """Increment attempt counter."""
        retry_attempts_total.labels(operation=operation, outcome=outcome).inc()


class PrometheusIngestionMetrics:
    """Prometheus-based ingestion metrics implementation."""

    def inc_poll(self, outcome: str) -> None:
        """Count one poll tick by outcome (processing, completed, error, transport_error)."""
        ingestion_polls_total.labels(outcome=outcome).inc()

    def inc_outcome(self, status: str) -> None:
        """Count one terminal outcome."""
        ingestion_outcomes_total.labels(status=status).inc()


class PrometheusMiningMetrics:
    """Prometheus-based mining metrics implementation."""

    def inc_mined(self, source: str) -> None:
        """Count one mined reply by visualization source ("none" when absent)."""
        responses_mined_total.labels(source=source).inc()
