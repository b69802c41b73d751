"""Metadata server (MDS) daemon naming and restart signalling."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from kubernetes import client

from ..constants import ANNOTATION_CEPHX_KEY_GENERATION, FIELD_MANAGER
from .errors import UpdateFailed

logger = logging.getLogger(__name__)

MDS_CAPS = ["mon", "allow profile mds", "osd", "allow *", "mds", "allow"]


def index_to_name(index: int) -> str:
    """Convert a zero-based index to a daemon letter: a, b, ..., z, aa, ab, ..."""
    name = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        name = chr(ord("a") + remainder) + name
    return name


def daemon_ids(fs_name: str, spec: dict[str, Any]) -> list[str]:
    """Daemon IDs of a filesystem, two per active daemon with active standby."""
    mds = spec.get("metadataServer") or {}
    count = int(mds.get("activeCount", 1))
    if mds.get("activeStandby", True):
        count *= 2
    return [f"{fs_name}-{index_to_name(i)}" for i in range(count)]


def entity_name(daemon_id: str) -> str:
    return f"mds.{daemon_id}"


def keyring_secret_name(daemon_id: str) -> str:
    return f"rook-ceph-mds-{daemon_id}-keyring"


def deployment_name(daemon_id: str) -> str:
    return f"rook-ceph-mds-{daemon_id}"


class WorkloadRestarter(Protocol):
    """Signals daemon workloads to restart with a new key generation."""

    def restart(self, namespace: str, names: list[str], generation: int) -> None:
        ...


class DeploymentRestarter:
    """Restart deployments by stamping the key generation on the pod template."""

    def __init__(self, api: client.AppsV1Api, timeout: float | None = None) -> None:
        self.api = api
        self.timeout = timeout

    def restart(self, namespace: str, names: list[str], generation: int) -> None:
        body = {
            "spec": {
                "template": {
                    "metadata": {"annotations": {ANNOTATION_CEPHX_KEY_GENERATION: str(generation)}},
                }
            }
        }
        for name in names:
            try:
                self.api.patch_namespaced_deployment(
                    name=name,
                    namespace=namespace,
                    body=body,
                    field_manager=FIELD_MANAGER,
                    _request_timeout=self.timeout,
                )
            except client.exceptions.ApiException as e:
                if e.status == 404:
                    logger.debug(f"deployment {namespace}/{name} not found; nothing to restart")
                    continue
                raise UpdateFailed("Deployment", namespace, name, e) from e
            logger.info(f"restarting deployment {namespace}/{name} for key generation {generation}")
