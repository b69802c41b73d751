"""Tests for MDS daemon naming and restarts."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from ceph_operator.constants import ANNOTATION_CEPHX_KEY_GENERATION
from ceph_operator.utils.errors import UpdateFailed
from ceph_operator.utils.mds import (
    DeploymentRestarter,
    daemon_ids,
    deployment_name,
    entity_name,
    index_to_name,
    keyring_secret_name,
)


class TestNaming:
    """Test cases for daemon naming."""

    @pytest.mark.parametrize("index, name", [(0, "a"), (1, "b"), (25, "z"), (26, "aa"), (27, "ab")])
    def test_index_to_name(self, index, name):
        assert index_to_name(index) == name

    def test_active_standby_doubles(self):
        spec = {"metadataServer": {"activeCount": 1, "activeStandby": True}}
        assert daemon_ids("myfs", spec) == ["myfs-a", "myfs-b"]

    def test_without_standby(self):
        spec = {"metadataServer": {"activeCount": 3, "activeStandby": False}}
        assert daemon_ids("myfs", spec) == ["myfs-a", "myfs-b", "myfs-c"]

    def test_defaults(self):
        assert daemon_ids("myfs", {}) == ["myfs-a", "myfs-b"]

    def test_derived_names(self):
        assert entity_name("myfs-a") == "mds.myfs-a"
        assert keyring_secret_name("myfs-a") == "rook-ceph-mds-myfs-a-keyring"
        assert deployment_name("myfs-a") == "rook-ceph-mds-myfs-a"


class TestDeploymentRestarter:
    """Test cases for DeploymentRestarter."""

    def test_patches_pod_template_annotation(self):
        api = MagicMock()

        DeploymentRestarter(api).restart("rook-ceph", ["rook-ceph-mds-myfs-a", "rook-ceph-mds-myfs-b"], 3)

        assert api.patch_namespaced_deployment.call_count == 2
        body = api.patch_namespaced_deployment.call_args.kwargs["body"]
        assert body["spec"]["template"]["metadata"]["annotations"] == {ANNOTATION_CEPHX_KEY_GENERATION: "3"}

    def test_missing_deployment_skipped(self):
        api = MagicMock()
        api.patch_namespaced_deployment.side_effect = [ApiException(status=404, reason="Not Found"), None]

        DeploymentRestarter(api).restart("rook-ceph", ["a", "b"], 2)

        assert api.patch_namespaced_deployment.call_count == 2

    def test_other_errors_raise(self):
        api = MagicMock()
        api.patch_namespaced_deployment.side_effect = ApiException(status=500, reason="Internal")

        with pytest.raises(UpdateFailed):
            DeploymentRestarter(api).restart("rook-ceph", ["a"], 2)
