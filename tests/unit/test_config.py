"""Tests for environment configuration and placement parsing."""

from __future__ import annotations

import logging
from unittest.mock import patch

from ceph_operator.config import CSIParams, ceph_command_timeout, drift_check_interval, k8s_request_timeout
from ceph_operator.utils.placement import (
    driver_placement_from_env,
    get_node_affinity,
    get_tolerations,
    parse_node_affinity,
    parse_tolerations,
)


class TestCSIParams:
    """Test cases for CSIParams.from_env."""

    def test_defaults(self):
        params = CSIParams.from_env({})
        assert params.operator_namespace == "rook-ceph"
        assert params.enable_rbd is True
        assert params.enable_cephfs is True
        assert params.enable_nfs is False
        assert params.force_cephfs_kernel_client is True
        assert params.provisioner_replicas == 2
        assert params.allocation_tables == {}
        assert params.images == {}

    def test_reads_values(self):
        params = CSIParams.from_env({
            "POD_NAMESPACE": "storage",
            "ROOK_CSI_ENABLE_NFS": "true",
            "ROOK_CSI_ENABLE_RBD": "false",
            "CSI_LOG_LEVEL": "5",
            "CSI_FORCE_CEPHFS_KERNEL_CLIENT": "false",
            "CSI_PROVISIONER_REPLICAS": "1",
            "CSI_TOPOLOGY_DOMAIN_LABELS": "zone",
            "CSI_RBD_PLUGIN_UPDATE_STRATEGY": "OnDelete",
            "CSI_RBD_PROVISIONER_RESOURCE": "- name: csi-provisioner",
            "ROOK_CSI_CEPH_IMAGE": "quay.io/cephcsi/cephcsi:v3.14",
        })
        assert params.operator_namespace == "storage"
        assert params.enable_nfs is True
        assert params.enable_rbd is False
        assert params.log_level == 5
        assert params.force_cephfs_kernel_client is False
        assert params.provisioner_replicas == 1
        assert params.domain_labels == "zone"
        assert params.rbd_plugin_update_strategy == "OnDelete"
        assert params.allocation_tables == {"CSI_RBD_PROVISIONER_RESOURCE": "- name: csi-provisioner"}
        assert params.images == {"plugin": "quay.io/cephcsi/cephcsi:v3.14"}

    def test_empty_bool_keeps_default(self):
        assert CSIParams.from_env({"ROOK_CSI_ENABLE_CEPHFS": ""}).enable_cephfs is True

    def test_invalid_int_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING):
            params = CSIParams.from_env({
                "CSI_PROVISIONER_REPLICAS": "two",
                "CSI_RBD_LIVENESS_METRICS_PORT": "90x",
            })

        assert params.provisioner_replicas == 2
        assert params.rbd_liveness_metrics_port == 9080
        assert "CSI_PROVISIONER_REPLICAS" in caplog.text

    @patch.dict("os.environ", {"K8S_REQUEST_TIMEOUT_SECONDS": "5", "CEPH_COMMAND_TIMEOUT_SECONDS": "7"})
    def test_timeouts(self):
        assert k8s_request_timeout() == 5.0
        assert ceph_command_timeout() == 7.0

    @patch.dict("os.environ", {"K8S_REQUEST_TIMEOUT_SECONDS": "soon", "CEPH_COMMAND_TIMEOUT_SECONDS": " "})
    def test_invalid_timeouts_fall_back(self):
        assert k8s_request_timeout() == 30.0
        assert ceph_command_timeout() == 15.0

    @patch.dict("os.environ", {"DRIFT_CHECK_INTERVAL_SECONDS": "60"})
    def test_drift_check_interval(self):
        assert drift_check_interval() == 60

    @patch.dict("os.environ", {"DRIFT_CHECK_INTERVAL_SECONDS": "hourly"})
    def test_drift_check_interval_falls_back(self):
        assert drift_check_interval() == 300


class TestPlacement:
    """Test cases for placement parsing."""

    def test_node_affinity_values_and_exists(self):
        affinity = parse_node_affinity("role=storage-node,infra; rook.io/has-disk")
        terms = affinity["requiredDuringSchedulingIgnoredDuringExecution"]["nodeSelectorTerms"]
        assert terms == [{
            "matchExpressions": [
                {"key": "role", "operator": "In", "values": ["storage-node", "infra"]},
                {"key": "rook.io/has-disk", "operator": "Exists"},
            ]
        }]

    def test_node_affinity_empty(self):
        assert parse_node_affinity(" ; ") == {}

    def test_node_affinity_invalid_falls_back(self):
        assert get_node_affinity("AFF", {"default": True}, {"AFF": "=value"}) == {"default": True}

    def test_tolerations(self):
        value = "- key: node-role/storage\n  operator: Exists\n  effect: NoSchedule\n"
        assert parse_tolerations(value) == [{"key": "node-role/storage", "operator": "Exists", "effect": "NoSchedule"}]

    def test_tolerations_invalid_falls_back(self):
        assert get_tolerations("TOL", [], {"TOL": "key: not-a-list"}) == []

    def test_defaults_are_copies(self):
        default = [{"key": "a"}]
        result = get_tolerations("TOL", default, {})
        result.append({"key": "b"})
        assert default == [{"key": "a"}]

    def test_driver_placement_from_env(self):
        placement = driver_placement_from_env({
            "CSI_PLUGIN_TOLERATIONS": "- operator: Exists",
            "CSI_PROVISIONER_NODE_AFFINITY": "role=infra",
        })
        assert placement.node_plugin.tolerations == [{"operator": "Exists"}]
        assert placement.node_plugin.node_affinity == {}
        assert placement.controller_plugin.tolerations == []
        assert "requiredDuringSchedulingIgnoredDuringExecution" in placement.controller_plugin.node_affinity
