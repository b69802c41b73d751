"""Annotation-based ownership handoff of shared CSIDriver objects."""

from __future__ import annotations

import copy
import json
import logging

from .. import metrics
from ..constants import ANNOTATION_CSI_OWNER_REF
from ..services.kube.store import ObjectStore, is_not_found
from .errors import FetchFailed, SerializationFailed, UpdateFailed

logger = logging.getLogger(__name__)


def encode_owner_key(name: str, namespace: str) -> str:
    """Serialize an owner key with a stable field order.

    The output is the compact ``{"Namespace":...,"Name":...}`` document the
    csi-operator reads, so identical inputs always produce identical bytes.

    Raises:
        SerializationFailed: The key cannot be encoded
    """
    try:
        return json.dumps({"Namespace": namespace, "Name": name}, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationFailed(f"failed to marshal owner object key {name!r}: {e}") from e


def transfer_ownership(
    store: ObjectStore,
    target_name: str,
    owner_namespace: str,
    timeout: float | None = None,
) -> bool:
    """Point the ownership annotation of a shared object at the operator namespace.

    Args:
        store: Store for the shared kind (cluster-scoped CSIDriver objects)
        target_name: Name of the shared object
        owner_namespace: Namespace recorded as the owner
        timeout: Per-request timeout in seconds

    Returns:
        True when the annotation was written, False when nothing changed
        (object absent or annotation already correct)

    Raises:
        FetchFailed: Fetch failed with anything other than not-found
        SerializationFailed: The owner key could not be encoded
        UpdateFailed: The annotated object could not be written back
    """
    try:
        fetched = store.get(target_name, timeout=timeout)
    except Exception as e:
        if is_not_found(e):
            logger.debug(f"{target_name} {store.kind} not found; skipping ownership transfer.")
            metrics.ownership_transfers_total.labels(result="absent").inc()
            return False
        raise FetchFailed(store.kind, None, target_name, e) from e

    metadata = fetched.get("metadata") or {}
    value = encode_owner_key(metadata.get("name", target_name), owner_namespace)

    annotations = metadata.get("annotations") or {}
    if annotations.get(ANNOTATION_CSI_OWNER_REF) == value:
        metrics.ownership_transfers_total.labels(result="unchanged").inc()
        return False

    updated = copy.deepcopy(fetched)
    updated.setdefault("metadata", {})
    updated["metadata"]["annotations"] = {**annotations, ANNOTATION_CSI_OWNER_REF: value}

    try:
        store.update(updated, timeout=timeout)
    except Exception as e:
        metrics.ownership_transfers_total.labels(result="failed").inc()
        raise UpdateFailed(store.kind, None, target_name, e) from e

    logger.info(f"annotated {store.kind} {target_name!r} for csi-operator ownership")
    metrics.ownership_transfers_total.labels(result="transferred").inc()
    return True
