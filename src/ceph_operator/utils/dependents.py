"""Deletion guard for objects that other objects still depend on."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Protocol

from .. import metrics
from ..constants import KIND_CEPH_FILESYSTEM_SUBVOLUME_GROUP, REQUEUE_DEPENDENTS_SECONDS
from ..services.kube.store import CustomObjectStore
from .errors import DependentsBlocked
from .events import emit_deletion_blocked

logger = logging.getLogger(__name__)


class DependentList:
    """Ordered, de-duplicated ``(kind, name)`` pairs."""

    def __init__(self) -> None:
        self._items: list[tuple[str, str]] = []

    def add(self, kind: str, name: str) -> None:
        if (kind, name) not in self._items:
            self._items.append((kind, name))

    def is_empty(self) -> bool:
        return not self._items

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __str__(self) -> str:
        by_kind: dict[str, list[str]] = {}
        for kind, name in self._items:
            by_kind.setdefault(kind, []).append(name)
        return "; ".join(f"{kind}s: {names}" for kind, names in by_kind.items())


class DependentsLister(Protocol):
    """Lists the objects that depend on a resource."""

    def list_dependents(self, name: str, namespace: str) -> DependentList:
        ...


class KubeDependentsLister:
    """Subvolume groups referencing a CephFilesystem by name."""

    def __init__(self, subvolume_groups: CustomObjectStore, timeout: float | None = None) -> None:
        self.subvolume_groups = subvolume_groups
        self.timeout = timeout

    def list_dependents(self, name: str, namespace: str) -> DependentList:
        dependents = DependentList()
        for obj in self.subvolume_groups.list(namespace, timeout=self.timeout):
            if (obj.get("spec") or {}).get("filesystemName") == name:
                dependents.add(KIND_CEPH_FILESYSTEM_SUBVOLUME_GROUP, obj["metadata"]["name"])
        return dependents


def check_dependents(
    meta: dict[str, Any],
    kind: str,
    dependents: DependentList,
    delay: float = REQUEUE_DEPENDENTS_SECONDS,
) -> None:
    """Block deletion while dependents exist.

    Emits one Warning event per dependent and raises ``DependentsBlocked``,
    which keeps the finalizer in place and retries after ``delay`` seconds.
    """
    if dependents.is_empty():
        return

    name = meta.get("name", "unknown")
    for dependent_kind, dependent_name in dependents:
        emit_deletion_blocked(meta, dependent_kind, dependent_name)
        metrics.dependents_blocked_total.labels(kind=dependent_kind).inc()

    logger.info(f"deletion of {kind} {name!r} blocked by dependents: {dependents}")
    raise DependentsBlocked(kind, name, dependents, delay=delay)
