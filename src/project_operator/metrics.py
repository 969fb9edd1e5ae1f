"""Prometheus metrics for the Project Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "project_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "project_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

phase_failures_total = Counter(
    "project_operator_phase_failures_total",
    "Total number of reconcile phases that aborted a pass",
    ["phase", "error_type"],
)

# Configuration drift detection metrics
drift_corrected_total = Counter(
    "project_operator_drift_corrected_total",
    "Total number of corrective writes issued by the reconciler",
    ["phase", "resource_type", "operation"],
)

error_total = Counter(
    "project_operator_error_total",
    "Total number of reconcile errors",
    ["kind", "error_type"],
)

# API call metrics
api_call_total = Counter(
    "project_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "project_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "project_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
