"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_CLUSTER_NOT_READY,
    COND_DELETION_BLOCKED,
    COND_KEY_ROTATION_FAILED,
    COND_READY,
)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    ``lastTransitionTime`` only moves when the status value changes.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()
    updated = [dict(cond) for cond in conditions]

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }
    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    for idx, cond in enumerate(updated):
        if cond.get("type") == condition_type:
            if cond.get("status") == status:
                new_condition["lastTransitionTime"] = cond.get("lastTransitionTime", now)
            updated[idx] = new_condition
            break
    else:
        updated.append(new_condition)

    return updated


def remove_conditions(conditions: list[dict[str, Any]], *condition_types: str) -> list[dict[str, Any]]:
    """Drop conditions of the given types."""
    return [dict(cond) for cond in conditions if cond.get("type") not in condition_types]


def set_ready_condition(
    conditions: list[dict[str, Any]],
    status: bool,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the Ready condition."""
    return update_condition(
        conditions,
        COND_READY,
        "True" if status else "False",
        "Ready" if status else "NotReady",
        message,
        observed_generation,
    )


def set_cluster_not_ready_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the ClusterNotReady condition."""
    return update_condition(
        conditions,
        COND_CLUSTER_NOT_READY,
        "True",
        "ClusterNotReady",
        message,
        observed_generation,
    )


def set_key_rotation_failed_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the KeyRotationFailed condition."""
    return update_condition(
        conditions,
        COND_KEY_ROTATION_FAILED,
        "True",
        "KeyRotationFailed",
        message,
        observed_generation,
    )


def set_deletion_blocked_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the DeletionBlocked condition."""
    return update_condition(
        conditions,
        COND_DELETION_BLOCKED,
        "True",
        "ObjectHasDependents",
        message,
        observed_generation,
    )
