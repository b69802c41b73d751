"""Operator configuration read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_OPERATOR_NAMESPACE = "rook-ceph"

# Allocation table environment keys, one YAML list per key
ALLOCATION_TABLE_KEYS = (
    "CSI_RBD_PROVISIONER_RESOURCE",
    "CSI_RBD_PLUGIN_RESOURCE",
    "CSI_CEPHFS_PROVISIONER_RESOURCE",
    "CSI_CEPHFS_PLUGIN_RESOURCE",
    "CSI_NFS_PROVISIONER_RESOURCE",
    "CSI_NFS_PLUGIN_RESOURCE",
)

# Image-set ConfigMap keys and the environment variables overriding them
IMAGE_SET_KEYS = {
    "plugin": "ROOK_CSI_CEPH_IMAGE",
    "registrar": "ROOK_CSI_REGISTRAR_IMAGE",
    "provisioner": "ROOK_CSI_PROVISIONER_IMAGE",
    "attacher": "ROOK_CSI_ATTACHER_IMAGE",
    "resizer": "ROOK_CSI_RESIZER_IMAGE",
    "snapshotter": "ROOK_CSI_SNAPSHOTTER_IMAGE",
    "addons": "ROOK_CSIADDONS_IMAGE",
}


def _bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def _number(env: Mapping[str, str], key: str, default: Any, cast: Callable[[str], Any] = int) -> Any:
    value = (env.get(key) or "").strip()
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"invalid value {value!r} for {key}, using default {default}")
        return default


@dataclass(frozen=True)
class CSIParams:
    """CSI driver settings; the allocation tables stay raw YAML strings."""

    operator_namespace: str = DEFAULT_OPERATOR_NAMESPACE
    enable_rbd: bool = True
    enable_cephfs: bool = True
    enable_nfs: bool = False
    log_level: int = 0
    force_cephfs_kernel_client: bool = True
    enable_metadata: bool = False
    enable_omap_generator: bool = False
    enable_csi_addons: bool = False
    enable_volume_group_snapshot: bool = True
    provisioner_replicas: int = 2
    plugin_priority_class_name: str = ""
    provisioner_priority_class_name: str = ""
    kubelet_dir_path: str = "/var/lib/kubelet"
    enable_plugin_selinux_host_mount: bool = False
    domain_labels: str = ""
    rbd_plugin_update_strategy: str = "RollingUpdate"
    cephfs_plugin_update_strategy: str = "RollingUpdate"
    nfs_plugin_update_strategy: str = "RollingUpdate"
    rbd_liveness_metrics_port: int = 9080
    cephfs_liveness_metrics_port: int = 9081
    allocation_tables: Mapping[str, str] = field(default_factory=dict)
    images: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> CSIParams:
        """Read the CSI settings from environment variables."""
        env = os.environ if env is None else env
        return cls(
            operator_namespace=env.get("POD_NAMESPACE", DEFAULT_OPERATOR_NAMESPACE),
            enable_rbd=_bool(env.get("ROOK_CSI_ENABLE_RBD"), True),
            enable_cephfs=_bool(env.get("ROOK_CSI_ENABLE_CEPHFS"), True),
            enable_nfs=_bool(env.get("ROOK_CSI_ENABLE_NFS"), False),
            log_level=_number(env, "CSI_LOG_LEVEL", 0),
            force_cephfs_kernel_client=_bool(env.get("CSI_FORCE_CEPHFS_KERNEL_CLIENT"), True),
            enable_metadata=_bool(env.get("CSI_ENABLE_METADATA"), False),
            enable_omap_generator=_bool(env.get("CSI_ENABLE_OMAP_GENERATOR"), False),
            enable_csi_addons=_bool(env.get("CSI_ENABLE_CSIADDONS"), False),
            enable_volume_group_snapshot=_bool(env.get("CSI_ENABLE_VOLUME_GROUP_SNAPSHOT"), True),
            provisioner_replicas=_number(env, "CSI_PROVISIONER_REPLICAS", 2),
            plugin_priority_class_name=env.get("CSI_PLUGIN_PRIORITY_CLASSNAME", ""),
            provisioner_priority_class_name=env.get("CSI_PROVISIONER_PRIORITY_CLASSNAME", ""),
            kubelet_dir_path=env.get("ROOK_CSI_KUBELET_DIR_PATH", "/var/lib/kubelet"),
            enable_plugin_selinux_host_mount=_bool(env.get("CSI_PLUGIN_ENABLE_SELINUX_HOST_MOUNT"), False),
            domain_labels=env.get("CSI_TOPOLOGY_DOMAIN_LABELS", ""),
            rbd_plugin_update_strategy=env.get("CSI_RBD_PLUGIN_UPDATE_STRATEGY", "RollingUpdate"),
            cephfs_plugin_update_strategy=env.get("CSI_CEPHFS_PLUGIN_UPDATE_STRATEGY", "RollingUpdate"),
            nfs_plugin_update_strategy=env.get("CSI_NFS_PLUGIN_UPDATE_STRATEGY", "RollingUpdate"),
            rbd_liveness_metrics_port=_number(env, "CSI_RBD_LIVENESS_METRICS_PORT", 9080),
            cephfs_liveness_metrics_port=_number(env, "CSI_CEPHFS_LIVENESS_METRICS_PORT", 9081),
            allocation_tables={key: env[key] for key in ALLOCATION_TABLE_KEYS if env.get(key)},
            images={key: env[var] for key, var in IMAGE_SET_KEYS.items() if env.get(var)},
        )


def k8s_request_timeout() -> float:
    """Per-request timeout for Kubernetes API calls."""
    return _number(os.environ, "K8S_REQUEST_TIMEOUT_SECONDS", 30.0, float)


def ceph_command_timeout() -> float:
    """Timeout for a single ceph CLI invocation."""
    return _number(os.environ, "CEPH_COMMAND_TIMEOUT_SECONDS", 15.0, float)


def drift_check_interval() -> int:
    """Seconds between periodic filesystem passes that pick up cluster key generation changes."""
    return _number(os.environ, "DRIFT_CHECK_INTERVAL_SECONDS", 300)
