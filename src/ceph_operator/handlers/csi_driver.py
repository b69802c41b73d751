"""Handler writing csi-operator Driver resources for a CephCluster."""

from __future__ import annotations

from typing import Any, Callable

import kopf

from ..builders.driver import DriverKind, build_driver_spec, build_image_set_data
from ..config import CSIParams, k8s_request_timeout
from ..constants import API_GROUP_VERSION, IMAGE_SET_CONFIGMAP_NAME, KIND_CEPH_CLUSTER
from ..services.kube.store import ConfigMapStore, CSIDriverStore, ObjectStore, csi_driver_cr_store
from ..tracing import trace_span
from ..utils.events import (
    emit_driver_created,
    emit_driver_updated,
    emit_ownership_transferred,
    emit_reconcile_succeeded,
)
from ..utils.ownership import transfer_ownership
from ..utils.placement import DriverPlacement, driver_placement_from_env
from ..utils.resources import UpsertResult, upsert
from .base import BaseHandler
from .shared import get_core_v1_client, get_k8s_client, get_storage_v1_client


class CSIDriverHandler(BaseHandler):
    """Keeps one Driver resource per enabled CSI driver in the operator namespace."""

    def __init__(
        self,
        drivers: ObjectStore | None = None,
        csi_drivers: ObjectStore | None = None,
        config_maps: ObjectStore | None = None,
        params_loader: Callable[[], CSIParams] = CSIParams.from_env,
        placement_loader: Callable[[], DriverPlacement] = driver_placement_from_env,
    ):
        super().__init__(KIND_CEPH_CLUSTER)
        self._drivers = drivers
        self._csi_drivers = csi_drivers
        self._config_maps = config_maps
        self.params_loader = params_loader
        self.placement_loader = placement_loader

    @property
    def drivers(self) -> ObjectStore:
        if self._drivers is None:
            self._drivers = csi_driver_cr_store(get_k8s_client())
        return self._drivers

    @property
    def csi_drivers(self) -> ObjectStore:
        if self._csi_drivers is None:
            self._csi_drivers = CSIDriverStore(get_storage_v1_client())
        return self._csi_drivers

    @property
    def config_maps(self) -> ObjectStore:
        if self._config_maps is None:
            self._config_maps = ConfigMapStore(get_core_v1_client())
        return self._config_maps

    def reconcile(self, meta: dict[str, Any]) -> None:
        """Upsert the image set and every enabled driver of a cluster."""
        cluster_name = meta.get("name", "unknown")
        params = self.params_loader()
        placement = self.placement_loader()
        operator_ns = params.operator_namespace
        timeout = k8s_request_timeout()

        with trace_span("reconcile_csi_drivers", kind=KIND_CEPH_CLUSTER, attributes={"cluster.name": cluster_name}):
            upsert(
                self.config_maps,
                IMAGE_SET_CONFIGMAP_NAME,
                operator_ns,
                build_image_set_data(params),
                field="data",
                timeout=timeout,
            )

            for driver in DriverKind:
                if not driver.is_enabled(params):
                    continue
                driver_name = driver.driver_name(operator_ns)
                with trace_span("reconcile_csi_driver", kind=KIND_CEPH_CLUSTER, attributes={"driver.name": driver_name}):
                    self.log_info(meta, f"Creating {driver.name} driver resources", event="reconcile", driver=driver_name)
                    if transfer_ownership(self.csi_drivers, driver_name, operator_ns, timeout=timeout):
                        emit_ownership_transferred(meta, driver_name)

                    desired = build_driver_spec(driver, cluster_name, params, IMAGE_SET_CONFIGMAP_NAME, placement)
                    result = upsert(self.drivers, driver_name, operator_ns, desired, timeout=timeout)
                    if result == UpsertResult.CREATED:
                        emit_driver_created(meta, driver_name)
                    else:
                        emit_driver_updated(meta, driver_name)

            emit_reconcile_succeeded(meta, "CSI drivers reconciled")


# Global handler instance
_handler = CSIDriverHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_CEPH_CLUSTER)
@kopf.on.update(API_GROUP_VERSION, KIND_CEPH_CLUSTER)
@kopf.on.resume(API_GROUP_VERSION, KIND_CEPH_CLUSTER)
def handle_ceph_cluster(
    meta: dict[str, Any],
    **kwargs: Any,
) -> None:
    """Reconcile CSI drivers for a CephCluster."""
    _handler.reconcile_with_metrics(meta, lambda: _handler.reconcile(meta))
