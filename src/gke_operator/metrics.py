"""Prometheus metrics for the GKE Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "gke_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "gke_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

reconcile_deferred_total = Counter(
    "gke_operator_reconcile_deferred_total",
    "Reconciliations deferred because the resource was already being reconciled",
    ["kind"],
)

# External resource operations
external_operations_total = Counter(
    "gke_operator_external_operations_total",
    "Total number of operations against external resources",
    ["kind", "operation", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "gke_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["kind", "update_kind"],
)

late_initialized_total = Counter(
    "gke_operator_late_initialized_total",
    "Total number of specs late-initialized from observed state",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "gke_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "gke_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

rate_limit_hits_total = Counter(
    "gke_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)

# Errors and resulting resource states
error_total = Counter(
    "gke_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "gke_operator_resource_status_total",
    "Resource status observations",
    ["kind", "status"],
)
