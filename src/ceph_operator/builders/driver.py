"""Builders for csi.ceph.io Driver specs."""

from __future__ import annotations

import copy
import enum
import logging
from typing import Any

import yaml

from ..config import CSIParams
from ..constants import CEPHFS_DRIVER_SUFFIX, NFS_DRIVER_SUFFIX, RBD_DRIVER_SUFFIX
from ..utils.placement import DriverPlacement

logger = logging.getLogger(__name__)

FS_GROUP_POLICY_FILE = "File"
UPDATE_STRATEGY_ROLLING = "RollingUpdate"
UPDATE_STRATEGY_ON_DELETE = "OnDelete"
CEPHFS_CLIENT_KERNEL = "kernel"
CEPHFS_CLIENT_AUTODETECT = "autodetect"
SNAPSHOT_POLICY_VOLUME_GROUP = "volumeGroupSnapshot"
SNAPSHOT_POLICY_NONE = "none"

# Ordered (substring, field) dispatch tables; first match wins
CONTROLLER_PLUGIN_RESOURCE_FIELDS = (
    ("provisioner", "provisioner"),
    ("resizer", "resizer"),
    ("snapshotter", "snapshotter"),
    ("attacher", "attacher"),
    ("plugin", "plugin"),
    ("omap-generator", "omapGenerator"),
    ("liveness", "liveness"),
    ("addons", "addons"),
)

NODE_PLUGIN_RESOURCE_FIELDS = (
    ("registrar", "registrar"),
    ("plugin", "plugin"),
    ("liveness", "liveness"),
    ("addons", "addons"),
)


class DriverKind(str, enum.Enum):
    """CSI driver variants."""

    RBD = "rbd"
    CEPHFS = "cephfs"
    NFS = "nfs"

    @property
    def suffix(self) -> str:
        return {
            DriverKind.RBD: RBD_DRIVER_SUFFIX,
            DriverKind.CEPHFS: CEPHFS_DRIVER_SUFFIX,
            DriverKind.NFS: NFS_DRIVER_SUFFIX,
        }[self]

    def driver_name(self, operator_namespace: str) -> str:
        """Driver resource name, e.g. ``rook-ceph.rbd.csi.ceph.com``."""
        return f"{operator_namespace}.{self.suffix}"

    def is_enabled(self, params: CSIParams) -> bool:
        return {
            DriverKind.RBD: params.enable_rbd,
            DriverKind.CEPHFS: params.enable_cephfs,
            DriverKind.NFS: params.enable_nfs,
        }[self]

    def update_strategy_flag(self, params: CSIParams) -> str:
        return {
            DriverKind.RBD: params.rbd_plugin_update_strategy,
            DriverKind.CEPHFS: params.cephfs_plugin_update_strategy,
            DriverKind.NFS: params.nfs_plugin_update_strategy,
        }[self]

    def env_prefix(self) -> str:
        return f"CSI_{self.name}"


def parse_allocation_table(raw: str | None) -> list[dict[str, Any]]:
    """Parse a YAML allocation table into a list of ``{name, resource}`` rows.

    Unparsable tables are logged and treated as empty.
    """
    if not raw:
        return []
    try:
        rows = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.warning(f"failed to parse allocation table, ignoring it: {e}")
        return []
    if not isinstance(rows, list):
        logger.warning("allocation table is not a list, ignoring it")
        return []
    return [row for row in rows if isinstance(row, dict)]


def _resource_requirements(resource: Any) -> dict[str, Any]:
    if not isinstance(resource, dict):
        return {}
    requirements = {}
    for key in ("limits", "requests"):
        if resource.get(key):
            requirements[key] = copy.deepcopy(resource[key])
    return requirements


def dispatch_resources(
    rows: list[dict[str, Any]],
    fields: tuple[tuple[str, str], ...],
) -> dict[str, dict[str, Any]]:
    """Map allocation rows onto container resource fields.

    Each row goes to the first field whose substring occurs in the row name.
    Rows with an empty resource block or no matching substring are dropped.
    """
    resources: dict[str, dict[str, Any]] = {}
    for row in rows:
        name = str(row.get("name", ""))
        requirements = _resource_requirements(row.get("resource"))
        if not requirements:
            continue
        for substring, field in fields:
            if substring in name:
                resources[field] = requirements
                break
        else:
            logger.debug(f"allocation row {name!r} matches no container, dropping it")
    return resources


def domain_labels(csv: str) -> list[str]:
    """Split the topology domain labels CSV; empty input yields no labels."""
    if not csv:
        return []
    return [label.strip() for label in csv.split(",") if label.strip()]


def build_driver_spec(
    driver: DriverKind,
    cluster_name: str,
    params: CSIParams,
    image_set_name: str,
    placement: DriverPlacement,
) -> dict[str, Any]:
    """Build the desired spec of a Driver resource.

    Pure and deterministic: identical inputs yield structurally identical
    output, and the result shares no mutable state with the inputs.

    Args:
        driver: Driver variant
        cluster_name: Name of the CephCluster the driver serves
        params: CSI settings
        image_set_name: Name of the image-set ConfigMap
        placement: Node plugin and controller plugin placement

    Returns:
        Driver spec document
    """
    prefix = driver.env_prefix()
    controller_rows = parse_allocation_table(params.allocation_tables.get(f"{prefix}_PROVISIONER_RESOURCE"))
    node_rows = parse_allocation_table(params.allocation_tables.get(f"{prefix}_PLUGIN_RESOURCE"))

    update_strategy = UPDATE_STRATEGY_ROLLING
    if driver.update_strategy_flag(params) == UPDATE_STRATEGY_ON_DELETE:
        update_strategy = UPDATE_STRATEGY_ON_DELETE

    node_plugin: dict[str, Any] = {
        "priorityClassName": params.plugin_priority_class_name,
        "affinity": {"nodeAffinity": copy.deepcopy(placement.node_plugin.node_affinity)},
        "tolerations": copy.deepcopy(placement.node_plugin.tolerations),
        "kubeletDirPath": params.kubelet_dir_path,
        "enableSeLinuxHostMount": params.enable_plugin_selinux_host_mount,
        "resources": dispatch_resources(node_rows, NODE_PLUGIN_RESOURCE_FIELDS),
        "updateStrategy": {"type": update_strategy},
    }
    labels = domain_labels(params.domain_labels)
    if labels:
        node_plugin["topology"] = {"domainLabels": labels}

    controller_plugin = {
        "priorityClassName": params.provisioner_priority_class_name,
        "affinity": {"nodeAffinity": copy.deepcopy(placement.controller_plugin.node_affinity)},
        "tolerations": copy.deepcopy(placement.controller_plugin.tolerations),
        "replicas": params.provisioner_replicas,
        "resources": dispatch_resources(controller_rows, CONTROLLER_PLUGIN_RESOURCE_FIELDS),
    }

    spec: dict[str, Any] = {
        "log": {"verbosity": params.log_level},
        "imageSet": {"name": image_set_name},
        "clusterName": cluster_name,
        "enableMetadata": params.enable_metadata,
        "generateOMapInfo": params.enable_omap_generator,
        "fsGroupPolicy": FS_GROUP_POLICY_FILE,
        "nodePlugin": node_plugin,
        "controllerPlugin": controller_plugin,
        "deployCsiAddons": params.enable_csi_addons,
        "cephFsClientType": CEPHFS_CLIENT_KERNEL if params.force_cephfs_kernel_client else CEPHFS_CLIENT_AUTODETECT,
    }

    if driver == DriverKind.RBD:
        spec["liveness"] = {"metricsPort": params.rbd_liveness_metrics_port}
    elif driver == DriverKind.CEPHFS:
        spec["liveness"] = {"metricsPort": params.cephfs_liveness_metrics_port}
        spec["snapshotPolicy"] = (
            SNAPSHOT_POLICY_VOLUME_GROUP if params.enable_volume_group_snapshot else SNAPSHOT_POLICY_NONE
        )

    return spec


def build_image_set_data(params: CSIParams) -> dict[str, str]:
    """Build the data of the image-set ConfigMap from image overrides."""
    return dict(sorted(params.images.items()))
