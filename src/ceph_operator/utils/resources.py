"""Idempotent fetch-or-create-or-update of declaratively managed child resources."""

from __future__ import annotations

import copy
import enum
import logging
from typing import Any

from .. import metrics
from ..services.kube.store import ObjectStore, is_not_found
from .errors import CreateFailed, FetchFailed, UpdateFailed

logger = logging.getLogger(__name__)


class UpsertResult(str, enum.Enum):
    """Outcome of a successful upsert."""

    CREATED = "created"
    UPDATED = "updated"


def new_object(store: ObjectStore, name: str, namespace: str | None, desired: Any, field: str = "spec") -> dict[str, Any]:
    """Build a fresh object carrying only identity and the desired field."""
    metadata: dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": store.api_version,
        "kind": store.kind,
        "metadata": metadata,
        field: copy.deepcopy(desired),
    }


def merge_desired(fetched: dict[str, Any], desired: Any, field: str = "spec") -> dict[str, Any]:
    """Copy every field of the fetched object, then overwrite only ``field``.

    Identity, ``resourceVersion``, status and any other server-managed
    metadata come from ``fetched`` unchanged.
    """
    merged = copy.deepcopy(fetched)
    merged[field] = copy.deepcopy(desired)
    return merged


def upsert(
    store: ObjectStore,
    name: str,
    namespace: str | None,
    desired: Any,
    field: str = "spec",
    timeout: float | None = None,
) -> UpsertResult:
    """Create the object if absent, otherwise overwrite its ``field`` in full.

    No diffing is done: out-of-band edits to ``field`` are reverted on the
    next pass.

    Args:
        store: Object store for the child kind
        name: Object name
        namespace: Object namespace (None for cluster-scoped kinds)
        desired: Desired content of ``field``
        field: Top-level field owned by the operator ("spec", or "data" for ConfigMaps)
        timeout: Per-request timeout in seconds

    Returns:
        UpsertResult.CREATED or UpsertResult.UPDATED

    Raises:
        FetchFailed: Fetch failed with anything other than not-found
        CreateFailed: Object was absent and could not be created
        UpdateFailed: Object was present and could not be written back
    """
    try:
        fetched = store.get(name, namespace, timeout=timeout)
    except Exception as e:
        if not is_not_found(e):
            metrics.resource_upserts_total.labels(kind=store.kind, result="fetch_failed").inc()
            raise FetchFailed(store.kind, namespace, name, e) from e

        try:
            store.create(new_object(store, name, namespace, desired, field), timeout=timeout)
        except Exception as create_error:
            metrics.resource_upserts_total.labels(kind=store.kind, result="create_failed").inc()
            raise CreateFailed(store.kind, namespace, name, create_error) from create_error

        logger.info(f"successfully created {store.kind} {name!r}")
        metrics.resource_upserts_total.labels(kind=store.kind, result="created").inc()
        return UpsertResult.CREATED

    try:
        store.update(merge_desired(fetched, desired, field), timeout=timeout)
    except Exception as e:
        metrics.resource_upserts_total.labels(kind=store.kind, result="update_failed").inc()
        raise UpdateFailed(store.kind, namespace, name, e) from e

    logger.info(f"successfully updated {store.kind} {name!r}")
    metrics.resource_upserts_total.labels(kind=store.kind, result="updated").inc()
    return UpsertResult.UPDATED
