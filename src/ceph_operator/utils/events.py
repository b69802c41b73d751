"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_DELETION_BLOCKED,
    EVENT_REASON_DRIVER_CREATED,
    EVENT_REASON_DRIVER_UPDATED,
    EVENT_REASON_KEY_ROTATED,
    EVENT_REASON_OWNERSHIP_TRANSFERRED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_RECONCILE_SUCCEEDED,
)


def emit_event(
    meta: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        meta: Resource metadata
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        meta,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(meta: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(meta, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(meta: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(meta, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_reconcile_succeeded(meta: dict[str, Any], message: str) -> None:
    """Emit reconcile succeeded event."""
    emit_event(meta, EVENT_REASON_RECONCILE_SUCCEEDED, message)


def emit_driver_created(meta: dict[str, Any], driver_name: str) -> None:
    """Emit CSI driver created event."""
    emit_event(meta, EVENT_REASON_DRIVER_CREATED, f"CSI driver {driver_name} created")


def emit_driver_updated(meta: dict[str, Any], driver_name: str) -> None:
    """Emit CSI driver updated event."""
    emit_event(meta, EVENT_REASON_DRIVER_UPDATED, f"CSI driver {driver_name} updated")


def emit_ownership_transferred(meta: dict[str, Any], driver_name: str) -> None:
    """Emit CSIDriver ownership transferred event."""
    emit_event(
        meta,
        EVENT_REASON_OWNERSHIP_TRANSFERRED,
        f"CSIDriver {driver_name} annotated for csi-operator ownership",
    )


def emit_key_rotated(meta: dict[str, Any], entity: str, generation: int) -> None:
    """Emit cephx key rotated event."""
    emit_event(meta, EVENT_REASON_KEY_ROTATED, f"Rotated cephx key for {entity} to generation {generation}")


def emit_deletion_blocked(meta: dict[str, Any], kind: str, name: str) -> None:
    """Emit one deletion blocked event for a single dependent."""
    emit_event(
        meta,
        EVENT_REASON_DELETION_BLOCKED,
        f"deletion is blocked because dependent {kind} {name!r} exists",
        type_="Warning",
    )
