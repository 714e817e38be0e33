"""Prometheus metrics for ledger mutations, interest repricing and HTTP latency"""

from prometheus_client import Counter, Histogram

# Mutation metrics
mutation_counter = Counter(
    "ledger_mutation_total",
    "Ledger mutations attempted",
    ["operation", "outcome"],  # outcome: applied | rejected | failed
)

interest_repriced_counter = Counter(
    "ledger_interest_repriced_total",
    "InterestEarned entries repriced by cascade recomputation",
    ["operation"],
)

mutation_duration_histogram = Histogram(
    "ledger_mutation_duration_seconds",
    "Time from lock acquisition to commit",
    ["operation"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Persistence metrics
persistence_failures_counter = Counter(
    "ledger_persistence_failures_total",
    "Storage failures surfaced to callers",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_mutation(operation: str, outcome: str, repriced: int = 0, duration_seconds: float = 0.0) -> None:
    """Record one mutation attempt and how many interest entries it repriced"""
    mutation_counter.labels(operation=operation, outcome=outcome).inc()
    if repriced:
        interest_repriced_counter.labels(operation=operation).inc(repriced)
    if outcome == "applied":
        mutation_duration_histogram.labels(operation=operation).observe(duration_seconds)
