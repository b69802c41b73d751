"""Tests for base handler functionality."""

from __future__ import annotations

import json
import logging
from unittest.mock import Mock, patch

import kopf
import pytest

from ceph_operator.constants import FINALIZER_CEPH_FILESYSTEM as FINALIZER
from ceph_operator.handlers.base import BaseHandler
from ceph_operator.utils.errors import ClusterNotReady


class TestBaseHandler:
    """Test cases for BaseHandler class."""

    def test_init(self):
        handler = BaseHandler(kind="TestKind")
        assert handler.kind == "TestKind"
        assert handler.finalizer is None
        assert handler.logger is not None

    def test_ensure_finalizer_adds_when_missing(self):
        handler = BaseHandler(kind="TestKind", finalizer=FINALIZER)
        patch = kopf.Patch()

        handler.ensure_finalizer({"finalizers": ["other"]}, patch)

        assert patch.metadata["finalizers"] == ["other", FINALIZER]

    def test_ensure_finalizer_no_patch_when_present(self):
        handler = BaseHandler(kind="TestKind", finalizer=FINALIZER)
        patch = kopf.Patch()

        handler.ensure_finalizer({"finalizers": [FINALIZER]}, patch)

        assert "finalizers" not in patch.metadata

    def test_ensure_finalizer_does_not_mutate_meta(self):
        handler = BaseHandler(kind="TestKind", finalizer=FINALIZER)
        meta = {"finalizers": []}

        handler.ensure_finalizer(meta, kopf.Patch())

        assert meta["finalizers"] == []

    def test_no_finalizer_configured(self):
        handler = BaseHandler(kind="TestKind")
        patch = kopf.Patch()

        handler.ensure_finalizer({}, patch)
        handler.remove_finalizer({"finalizers": ["x"]}, patch)

        assert "finalizers" not in patch.metadata

    def test_remove_finalizer(self):
        handler = BaseHandler(kind="TestKind", finalizer=FINALIZER)
        patch = kopf.Patch()

        handler.remove_finalizer({"finalizers": [FINALIZER, "other-finalizer"]}, patch)

        assert patch.metadata["finalizers"] == ["other-finalizer"]

    def test_remove_finalizer_sets_none_when_empty(self):
        handler = BaseHandler(kind="TestKind", finalizer=FINALIZER)
        patch = kopf.Patch()

        handler.remove_finalizer({"finalizers": [FINALIZER]}, patch)

        assert patch.metadata["finalizers"] is None

    def test_log_error_sanitizes_and_tags_type(self, caplog):
        handler = BaseHandler(kind="TestKind")
        meta = {"name": "myfs", "namespace": "rook-ceph", "uid": "u1"}

        with caplog.at_level(logging.ERROR):
            handler.log_error(meta, "failed", error=RuntimeError("key = AQBQyl5nAAAAABAAj3Kh0ZQ5kQxGQvP2b0S"))

        record = json.loads(caplog.records[-1].getMessage())
        assert record["resource"] == "TestKind"
        assert record["name"] == "myfs"
        assert record["error_type"] == "RuntimeError"
        assert "AQBQyl5n" not in record["error"]

    @patch("ceph_operator.handlers.base.emit_reconcile_started")
    @patch("ceph_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_success(self, mock_metrics, mock_emit_started):
        handler = BaseHandler(kind="TestKind")
        meta = {"name": "test-resource", "namespace": "default"}
        reconcile_fn = Mock()

        handler.reconcile_with_metrics(meta, reconcile_fn)

        reconcile_fn.assert_called_once()
        mock_emit_started.assert_called_once_with(meta)
        mock_metrics.reconcile_total.labels.assert_any_call(kind="TestKind", result="started")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="TestKind", result="success")
        assert mock_metrics.reconcile_duration_seconds.labels.called

    @patch("ceph_operator.handlers.base.emit_reconcile_failed")
    @patch("ceph_operator.handlers.base.emit_reconcile_started")
    @patch("ceph_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_failure(self, mock_metrics, mock_emit_started, mock_emit_failed):
        handler = BaseHandler(kind="TestKind")
        meta = {"name": "test-resource", "namespace": "default"}

        def failing_fn():
            raise ValueError("Test error")

        with pytest.raises(ValueError):
            handler.reconcile_with_metrics(meta, failing_fn)

        mock_emit_failed.assert_called_once_with(meta, "Reconciliation failed: Test error")
        mock_metrics.error_total.labels.assert_called_with(kind="TestKind", error_type="ValueError")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="TestKind", result="error")

    @patch("ceph_operator.handlers.base.emit_reconcile_failed")
    @patch("ceph_operator.handlers.base.emit_reconcile_started")
    @patch("ceph_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_requeue_is_not_error(self, mock_metrics, mock_emit_started, mock_emit_failed):
        handler = BaseHandler(kind="TestKind")

        def requeue_fn():
            raise ClusterNotReady("cluster not ready", delay=10)

        with pytest.raises(ClusterNotReady):
            handler.reconcile_with_metrics({"name": "x"}, requeue_fn)

        mock_emit_failed.assert_not_called()
        mock_metrics.error_total.labels.assert_not_called()
        mock_metrics.reconcile_total.labels.assert_any_call(kind="TestKind", result="requeued")

    @patch("ceph_operator.handlers.base.metrics")
    def test_update_resource_status_ready(self, mock_metrics):
        handler = BaseHandler(kind="TestKind")
        patch = kopf.Patch()

        handler.update_resource_status(patch, {"generation": 5}, ready=True, status_data={"phase": "Ready"})

        assert patch.status["observedGeneration"] == 5
        assert patch.status["phase"] == "Ready"
        mock_metrics.resource_status_total.labels.assert_called_with(kind="TestKind", status="ready")

    @patch("ceph_operator.handlers.base.metrics")
    def test_update_resource_status_not_ready(self, mock_metrics):
        handler = BaseHandler(kind="TestKind")
        patch = kopf.Patch()

        handler.update_resource_status(patch, {}, ready=False)

        assert patch.status["observedGeneration"] == 0
        mock_metrics.resource_status_total.labels.assert_called_with(kind="TestKind", status="not_ready")
