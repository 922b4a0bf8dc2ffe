"""
Prometheus metrics for the settlement service.

Metrics exposed:
- Prediction settlement outcomes by sport
- Batch sweep duration
- Parlay settlement outcomes
- Stat provider request results
- Scheduler status gauge
"""
from prometheus_client import Counter, Gauge, Histogram

# Settlement Metrics
settlement_predictions_total = Counter(
    "settlement_predictions_total",
    "Predictions processed by the settlement sweep",
    ["sport", "outcome"]  # outcome: correct, incorrect, push, needs_review, not_final, error
)

settlement_batch_duration_seconds = Histogram(
    "settlement_batch_duration_seconds",
    "Wall-clock duration of a settlement batch",
    buckets=(0.5, 1, 2.5, 5, 10, 20, 30, 45, 60, 120)
)

settlement_batches_total = Counter(
    "settlement_batches_total",
    "Settlement batches executed",
    ["budget_exhausted"]
)

parlays_settled_total = Counter(
    "parlays_settled_total",
    "Parlays settled",
    ["status"]
)

# Reconciliation Metrics
reconciliation_updates_total = Counter(
    "reconciliation_updates_total",
    "Prediction records moved by the reconciliation utility",
    ["action"]
)

# External API Metrics
stat_provider_requests_total = Counter(
    "stat_provider_requests_total",
    "Stat provider HTTP requests",
    ["provider", "result"]  # result: success, http_error, transport_error, circuit_open
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the settlement scheduler is running (1=running, 0=stopped)"
)

scheduler_jobs_total = Gauge(
    "scheduler_jobs_total",
    "Number of scheduled jobs"
)


def update_scheduler_metrics() -> None:
    """Refresh scheduler gauges from the global scheduler."""
    from propsettle.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running and scheduler.scheduler:
        scheduler_running.set(1)
        scheduler_jobs_total.set(len(scheduler.scheduler.get_jobs()))
    else:
        scheduler_running.set(0)
        scheduler_jobs_total.set(0)
