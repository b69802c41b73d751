"""Dict-based object store adapters over the Kubernetes API."""

from __future__ import annotations

import time
from typing import Any, Callable, Protocol

from kubernetes import client

from ... import metrics
from ...constants import (
    API_GROUP,
    API_VERSION,
    CSI_API_GROUP,
    CSI_API_VERSION,
    FIELD_MANAGER,
    KIND_CEPH_CLUSTER,
    KIND_CEPH_FILESYSTEM_SUBVOLUME_GROUP,
    KIND_CONFIG_MAP,
    KIND_CSI_DRIVER,
    KIND_STORAGE_CSI_DRIVER,
    PLURAL_CEPH_CLUSTERS,
    PLURAL_CEPH_FILESYSTEM_SUBVOLUME_GROUPS,
    PLURAL_CSI_DRIVERS,
)
from ...utils.rate_limit import handle_rate_limit_error, rate_limit_k8s


class ObjectStore(Protocol):
    """Protocol for get/create/update of one kind of object.

    Implementations raise ``kubernetes.client.exceptions.ApiException``;
    status 404 on ``get`` means the object is absent.
    """

    kind: str
    api_version: str

    def get(self, name: str, namespace: str | None = None, timeout: float | None = None) -> dict[str, Any]:
        """Fetch an object by identity."""
        ...

    def create(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        """Create an object."""
        ...

    def update(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        """Replace an existing object."""
        ...


def is_not_found(error: BaseException) -> bool:
    """Check whether an API error means the object does not exist."""
    return isinstance(error, client.exceptions.ApiException) and error.status == 404


def _call_api(operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call the Kubernetes API with rate limiting, retry on throttling and metrics."""
    attempt = 0
    while True:
        start_time = time.time()
        try:
            result = rate_limit_k8s(func)(*args, **kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except Exception as e:
            result_label = "not_found" if is_not_found(e) else "error"
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result=result_label).inc()
            if handle_rate_limit_error(e, attempt):
                attempt += 1
                continue
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)


class CustomObjectStore:
    """Namespaced custom resources of one group/version/plural."""

    def __init__(self, api: client.CustomObjectsApi, group: str, version: str, plural: str, kind: str) -> None:
        self.api = api
        self.group = group
        self.version = version
        self.plural = plural
        self.kind = kind
        self.api_version = f"{group}/{version}"

    def get(self, name: str, namespace: str | None = None, timeout: float | None = None) -> dict[str, Any]:
        return _call_api(
            f"get_{self.plural}",
            self.api.get_namespaced_custom_object,
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.plural,
            name=name,
            _request_timeout=timeout,
        )

    def create(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        return _call_api(
            f"create_{self.plural}",
            self.api.create_namespaced_custom_object,
            group=self.group,
            version=self.version,
            namespace=body["metadata"]["namespace"],
            plural=self.plural,
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )

    def update(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        return _call_api(
            f"replace_{self.plural}",
            self.api.replace_namespaced_custom_object,
            group=self.group,
            version=self.version,
            namespace=body["metadata"]["namespace"],
            plural=self.plural,
            name=body["metadata"]["name"],
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )

    def list(self, namespace: str, timeout: float | None = None) -> list[dict[str, Any]]:
        """List every object of this kind in a namespace."""
        result = _call_api(
            f"list_{self.plural}",
            self.api.list_namespaced_custom_object,
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.plural,
            _request_timeout=timeout,
        )
        return list(result.get("items", []))


class ConfigMapStore:
    """Core v1 ConfigMaps as dicts."""

    kind = KIND_CONFIG_MAP
    api_version = "v1"

    def __init__(self, api: client.CoreV1Api) -> None:
        self.api = api

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self.api.api_client.sanitize_for_serialization(obj)

    def get(self, name: str, namespace: str | None = None, timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api(
            "read_config_map",
            self.api.read_namespaced_config_map,
            name=name,
            namespace=namespace,
            _request_timeout=timeout,
        )
        return self._to_dict(obj)

    def create(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api(
            "create_config_map",
            self.api.create_namespaced_config_map,
            namespace=body["metadata"]["namespace"],
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )
        return self._to_dict(obj)

    def update(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api(
            "replace_config_map",
            self.api.replace_namespaced_config_map,
            name=body["metadata"]["name"],
            namespace=body["metadata"]["namespace"],
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )
        return self._to_dict(obj)


class CSIDriverStore:
    """Cluster-scoped storage.k8s.io/v1 CSIDriver objects as dicts."""

    kind = KIND_STORAGE_CSI_DRIVER
    api_version = "storage.k8s.io/v1"

    def __init__(self, api: client.StorageV1Api) -> None:
        self.api = api

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self.api.api_client.sanitize_for_serialization(obj)

    def get(self, name: str, namespace: str | None = None, timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api("read_csi_driver", self.api.read_csi_driver, name=name, _request_timeout=timeout)
        return self._to_dict(obj)

    def create(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api(
            "create_csi_driver",
            self.api.create_csi_driver,
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )
        return self._to_dict(obj)

    def update(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        obj = _call_api(
            "replace_csi_driver",
            self.api.replace_csi_driver,
            name=body["metadata"]["name"],
            body=body,
            field_manager=FIELD_MANAGER,
            _request_timeout=timeout,
        )
        return self._to_dict(obj)


def csi_driver_cr_store(api: client.CustomObjectsApi) -> CustomObjectStore:
    """Store for csi.ceph.io/v1 Driver resources."""
    return CustomObjectStore(api, CSI_API_GROUP, CSI_API_VERSION, PLURAL_CSI_DRIVERS, KIND_CSI_DRIVER)


def ceph_cluster_store(api: client.CustomObjectsApi) -> CustomObjectStore:
    """Store for ceph.rook.io/v1 CephCluster resources."""
    return CustomObjectStore(api, API_GROUP, API_VERSION, PLURAL_CEPH_CLUSTERS, KIND_CEPH_CLUSTER)


def subvolume_group_store(api: client.CustomObjectsApi) -> CustomObjectStore:
    """Store for ceph.rook.io/v1 CephFilesystemSubVolumeGroup resources."""
    return CustomObjectStore(
        api,
        API_GROUP,
        API_VERSION,
        PLURAL_CEPH_FILESYSTEM_SUBVOLUME_GROUPS,
        KIND_CEPH_FILESYSTEM_SUBVOLUME_GROUP,
    )
