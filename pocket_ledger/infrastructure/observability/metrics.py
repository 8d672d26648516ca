"""Prometheus metrics for purchases, card payments, yields and coverage"""

from prometheus_client import Counter, Histogram

# Card metrics
purchase_counter = Counter(
    "ledger_purchases_total",
    "Credit card purchases attempted",
    ["outcome"],  # posted | rejected
)

auto_payment_counter = Counter(
    "ledger_auto_payments_total",
    "Automatic card payments created",
)

auto_payment_skipped_counter = Counter(
    "ledger_auto_payments_skipped_total",
    "Automatic card payments skipped",
    ["reason"],
)

# Investment metrics
yield_counter = Counter(
    "ledger_yield_applications_total",
    "Monthly yield applications",
)

coverage_counter = Counter(
    "ledger_coverage_total",
    "Negative balance coverage attempts",
    ["outcome"],  # covered | no_investment | insufficient_funds
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_purchase(posted: bool) -> None:
    purchase_counter.labels(outcome="posted" if posted else "rejected").inc()


def record_coverage(success: bool, reason: str | None = None) -> None:
    """Record coverage outcome; failures are bucketed by reason"""
    outcome = "covered" if success else (reason or "failed")
    coverage_counter.labels(outcome=outcome).inc()
