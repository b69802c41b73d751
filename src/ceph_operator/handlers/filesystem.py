"""Handler for CephFilesystem daemon credentials and deletion."""

from __future__ import annotations

from typing import Any, Callable

import kopf
from kubernetes import client

from ..config import ceph_command_timeout, drift_check_interval, k8s_request_timeout
from ..constants import (
    API_GROUP_VERSION,
    CLUSTER_PHASE_READY,
    COND_CLUSTER_NOT_READY,
    COND_KEY_ROTATION_FAILED,
    FINALIZER_CEPH_FILESYSTEM,
    KIND_CEPH_FILESYSTEM,
    LABEL_APP,
    LABEL_FILESYSTEM,
    REQUEUE_CLUSTER_NOT_READY_SECONDS,
)
from ..services.ceph.client import CephCLI, CephClient
from ..services.kube.store import CustomObjectStore, ceph_cluster_store, subvolume_group_store
from ..tracing import add_span_attribute, trace_span
from ..utils.cephx import (
    CephVersionSource,
    CephxStatus,
    KeyRotator,
    RotationPolicy,
    RotationProgress,
    VersionSource,
    generate_keyring,
    rotation_policy,
    settled_status,
    should_rotate,
)
from ..utils.conditions import (
    remove_conditions,
    set_cluster_not_ready_condition,
    set_deletion_blocked_condition,
    set_key_rotation_failed_condition,
    set_ready_condition,
)
from ..utils.dependents import DependentsLister, KubeDependentsLister, check_dependents
from ..utils.errors import ClusterNotReady, sanitize_exception
from ..utils.events import emit_key_rotated, emit_reconcile_succeeded
from ..utils.mds import (
    MDS_CAPS,
    DeploymentRestarter,
    WorkloadRestarter,
    daemon_ids,
    deployment_name,
    entity_name,
    keyring_secret_name,
)
from ..utils.secrets import ensure_keyring_secret, keyring_secret_exists
from .base import BaseHandler
from .shared import get_apps_v1_client, get_core_v1_client, get_k8s_client

MDS_APP_LABEL = "rook-ceph-mds"


def default_ceph_factory(cluster_namespace: str) -> CephClient:
    return CephClient(CephCLI(cluster_namespace), timeout=ceph_command_timeout())


def cluster_is_ready(cluster: dict[str, Any]) -> bool:
    """A cluster is ready once the operator has reported any Ceph health for it.

    The phase is not consulted and any health value, HEALTH_ERR included,
    counts.
    """
    status = cluster.get("status") or {}
    return bool((status.get("ceph") or {}).get("health"))


class FilesystemHandler(BaseHandler):
    """Handler for CephFilesystem resources."""

    def __init__(
        self,
        clusters: CustomObjectStore | None = None,
        core_api: client.CoreV1Api | None = None,
        dependents: DependentsLister | None = None,
        restarter: WorkloadRestarter | None = None,
        ceph_factory: Callable[[str], CephClient] = default_ceph_factory,
        version_source_factory: Callable[[CephClient], VersionSource] = CephVersionSource,
    ):
        """Initialize filesystem handler.

        Collaborators left as None are built from the in-cluster
        configuration on first use.
        """
        super().__init__(KIND_CEPH_FILESYSTEM, FINALIZER_CEPH_FILESYSTEM)
        self._clusters = clusters
        self._core_api = core_api
        self._dependents = dependents
        self._restarter = restarter
        self.ceph_factory = ceph_factory
        self.version_source_factory = version_source_factory

    @property
    def clusters(self) -> CustomObjectStore:
        if self._clusters is None:
            self._clusters = ceph_cluster_store(get_k8s_client())
        return self._clusters

    @property
    def core_api(self) -> client.CoreV1Api:
        if self._core_api is None:
            self._core_api = get_core_v1_client()
        return self._core_api

    @property
    def dependents(self) -> DependentsLister:
        if self._dependents is None:
            self._dependents = KubeDependentsLister(subvolume_group_store(get_k8s_client()), k8s_request_timeout())
        return self._dependents

    @property
    def restarter(self) -> WorkloadRestarter:
        if self._restarter is None:
            self._restarter = DeploymentRestarter(get_apps_v1_client(), k8s_request_timeout())
        return self._restarter

    def get_ready_cluster(
        self,
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> dict[str, Any]:
        """Return the CephCluster of the filesystem namespace.

        Raises:
            ClusterNotReady: No cluster exists or it is not ready yet
        """
        namespace = meta.get("namespace", "default")
        clusters = self.clusters.list(namespace, timeout=k8s_request_timeout())
        if not clusters:
            message = f"no CephCluster found in namespace {namespace!r}"
        elif not cluster_is_ready(clusters[0]):
            message = f"CephCluster {clusters[0]['metadata']['name']!r} is not ready"
        else:
            return clusters[0]

        self.log_warning(meta, message, reason="ClusterNotReady")
        conditions = set_cluster_not_ready_condition(status.get("conditions", []), message)
        conditions = set_ready_condition(conditions, False, message)
        self.update_resource_status(patch, meta, False, {"conditions": conditions})
        raise ClusterNotReady(message, delay=REQUEUE_CLUSTER_NOT_READY_SECONDS)

    def owner_reference(self, meta: dict[str, Any]) -> dict[str, Any]:
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_CEPH_FILESYSTEM,
            "name": meta.get("name"),
            "uid": meta.get("uid"),
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Reconcile the MDS daemon keys of a filesystem."""
        name = meta.get("name", "unknown")
        namespace = meta.get("namespace", "default")
        timeout = k8s_request_timeout()

        with trace_span("reconcile_filesystem", kind=KIND_CEPH_FILESYSTEM, attributes={"filesystem.name": name}):
            cluster = self.get_ready_cluster(meta, status, patch)

            ceph = self.ceph_factory(namespace)
            running, desired = self.version_source_factory(ceph).versions(cluster)
            policy = rotation_policy(cluster.get("spec") or {}, running, desired)
            current = CephxStatus.from_status(status)
            progress = RotationProgress.from_status(status)
            add_span_attribute("cephx.rotation_enabled", policy.enabled)
            add_span_attribute("cephx.target_generation", policy.target_generation)
            rotator = KeyRotator(ceph, entity_type="mds")

            rotating = should_rotate(current, policy)
            rotated = list(progress.rotated_towards(policy.target_generation)) if rotating else []
            restart: list[str] = []
            with trace_span("reconcile_mds_keys", kind=KIND_CEPH_FILESYSTEM):
                for daemon_id in daemon_ids(name, spec):
                    entity = entity_name(daemon_id)
                    secret_name = keyring_secret_name(daemon_id)
                    try:
                        # A daemon without a keyring secret gets its first key, not a rotation
                        rotate = (
                            rotating
                            and entity not in rotated
                            and keyring_secret_exists(self.core_api, namespace, secret_name, timeout)
                        )
                        outcome = rotator.reconcile_key(entity, MDS_CAPS, current, policy, running, rotate=rotate)
                        if outcome.rotated:
                            rotated.append(entity)
                        ensure_keyring_secret(
                            self.core_api,
                            namespace,
                            secret_name,
                            generate_keyring(entity, outcome.key, MDS_CAPS),
                            rotated=entity in rotated,
                            labels={LABEL_APP: MDS_APP_LABEL, LABEL_FILESYSTEM: name},
                            owner_references=[self.owner_reference(meta)],
                            timeout=timeout,
                        )
                    except Exception as e:
                        self.record_partial_rotation(meta, status, patch, policy, rotated, restart, entity, e)
                        raise

                    if outcome.rotated:
                        emit_key_rotated(meta, entity, policy.target_generation)
                    if entity in rotated:
                        restart.append(deployment_name(daemon_id))

            updated = settled_status(current, policy, running)
            if restart:
                self.restarter.restart(namespace, restart, updated.key_generation)

            conditions = remove_conditions(
                status.get("conditions", []),
                COND_CLUSTER_NOT_READY,
                COND_KEY_ROTATION_FAILED,
            )
            conditions = set_ready_condition(conditions, True, "Filesystem is ready")
            status_data: dict[str, Any] = {"phase": CLUSTER_PHASE_READY, "conditions": conditions}
            cephx: dict[str, Any] = {}
            if updated != current:
                cephx["daemon"] = updated.to_dict()
            if progress.entities:
                cephx["rotation"] = None
            if cephx:
                status_data["cephx"] = cephx
            self.update_resource_status(patch, meta, True, status_data)
            emit_reconcile_succeeded(meta, "Filesystem reconciled")

    def record_partial_rotation(
        self,
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
        policy: RotationPolicy,
        rotated: list[str],
        restart: list[str],
        entity: str,
        error: Exception,
    ) -> None:
        """Persist the entities rotated so far and restart the daemons already holding a new key.

        ``status.cephx.daemon`` is left untouched so the retry still rotates
        the remaining entities.
        """
        namespace = meta.get("namespace", "default")
        message = f"failed to reconcile cephx key for {entity!r}: {sanitize_exception(error)}"
        conditions = set_key_rotation_failed_condition(status.get("conditions", []), message)
        status_data: dict[str, Any] = {"conditions": conditions}
        if rotated:
            progress = RotationProgress(policy.target_generation, tuple(rotated))
            status_data["cephx"] = {"rotation": progress.to_dict()}
        self.update_resource_status(patch, meta, False, status_data)
        if restart:
            self.restarter.restart(namespace, restart, policy.target_generation)

    def delete(
        self,
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Hold deletion until no dependents remain, then release the finalizer."""
        name = meta.get("name", "unknown")
        namespace = meta.get("namespace", "default")

        with trace_span("delete_filesystem", kind=KIND_CEPH_FILESYSTEM, attributes={"filesystem.name": name}):
            dependents = self.dependents.list_dependents(name, namespace)
            if not dependents.is_empty():
                message = f"filesystem has dependents: {dependents}"
                conditions = set_deletion_blocked_condition(status.get("conditions", []), message)
                patch.status["conditions"] = conditions
                self.log_warning(meta, message, event="deletion", reason="DeletionBlocked")
                check_dependents(meta, KIND_CEPH_FILESYSTEM, dependents)

            self.log_info(meta, "Filesystem is being deleted", event="deletion", reason="Deletion")
            self.remove_finalizer(meta, patch)


# Global handler instance
_handler = FilesystemHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_CEPH_FILESYSTEM)
@kopf.on.update(API_GROUP_VERSION, KIND_CEPH_FILESYSTEM)
@kopf.on.resume(API_GROUP_VERSION, KIND_CEPH_FILESYSTEM)
def handle_filesystem(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle CephFilesystem reconciliation."""
    _handler.ensure_finalizer(meta, patch)
    _handler.reconcile_with_metrics(meta, lambda: _handler.reconcile(spec, meta, status, patch))


@kopf.timer(API_GROUP_VERSION, KIND_CEPH_FILESYSTEM, interval=drift_check_interval())
def check_filesystem_keys(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Periodically reconcile so CephCluster key generation changes reach the MDS daemons."""
    _handler.reconcile_with_metrics(meta, lambda: _handler.reconcile(spec, meta, status, patch))


@kopf.on.delete(API_GROUP_VERSION, KIND_CEPH_FILESYSTEM)
def handle_filesystem_delete(
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle CephFilesystem deletion."""
    _handler.delete(meta, status, patch)
