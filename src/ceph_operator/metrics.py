"""Prometheus metrics for the Ceph Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "ceph_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "ceph_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "ceph_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "ceph_operator_resource_status_total",
    "Resource status observations",
    ["kind", "status"],
)

# Child resource metrics
resource_upserts_total = Counter(
    "ceph_operator_resource_upserts_total",
    "Total number of child resource upserts",
    ["kind", "result"],
)

ownership_transfers_total = Counter(
    "ceph_operator_ownership_transfers_total",
    "Total number of CSIDriver ownership transfer evaluations",
    ["result"],
)

# Credential metrics
key_rotations_total = Counter(
    "ceph_operator_key_rotations_total",
    "Total number of cephx key rotations",
    ["entity_type"],
)

dependents_blocked_total = Counter(
    "ceph_operator_dependents_blocked_total",
    "Total number of deletions blocked by dependents",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "ceph_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "ceph_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "ceph_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
