"""Utility functions for the Ceph Operator."""

from .conditions import set_ready_condition, update_condition
from .events import emit_event
from .rate_limit import handle_rate_limit_error, rate_limit_ceph, rate_limit_k8s

__all__ = [
    "update_condition",
    "set_ready_condition",
    "emit_event",
    "rate_limit_k8s",
    "rate_limit_ceph",
    "handle_rate_limit_error",
]
