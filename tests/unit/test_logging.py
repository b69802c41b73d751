"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock, patch

from ceph_operator.logging import log_resource_event, setup_structured_logging

RESOURCE = {
    "controller": "ceph-operator",
    "resource": "CephFilesystem",
    "name": "myfs",
    "namespace": "rook-ceph",
    "uid": "uid-1",
}


class TestLogResourceEvent:
    """Test cases for log_resource_event."""

    def test_single_json_document(self):
        logger = MagicMock()

        log_resource_event(logger, logging.WARNING, RESOURCE, "reconcile", "KeyRotated", "rotated", entity="mds.myfs-a")

        level, payload = logger.log.call_args.args
        assert level == logging.WARNING
        data = json.loads(payload)
        assert data["resource"] == "CephFilesystem"
        assert data["reason"] == "KeyRotated"
        assert data["entity"] == "mds.myfs-a"

    def test_redacts_key_material(self):
        logger = MagicMock()

        log_resource_event(logger, logging.INFO, RESOURCE, "reconcile", "Info", "msg", key="AQ==", keyring="[mds.a]")

        data = json.loads(logger.log.call_args.args[1])
        assert data["key"] == "***REDACTED***"
        assert data["keyring"] == "***REDACTED***"

    def test_resource_not_modified(self):
        logger = MagicMock()
        resource = dict(RESOURCE)

        log_resource_event(logger, logging.INFO, resource, "reconcile", "Info", "msg", extra="x")

        assert resource == RESOURCE


class TestSetupStructuredLogging:
    """Test cases for setup_structured_logging."""

    @patch.dict("os.environ", {"ROOK_LOG_LEVEL": "debug"})
    @patch("ceph_operator.logging.logging.basicConfig")
    def test_level_from_env(self, mock_basic_config):
        setup_structured_logging()
        assert mock_basic_config.call_args.kwargs["level"] == logging.DEBUG

    @patch.dict("os.environ", {"ROOK_LOG_LEVEL": "chatty"})
    @patch("ceph_operator.logging.logging.basicConfig")
    def test_unknown_level_defaults_to_info(self, mock_basic_config):
        setup_structured_logging()
        assert mock_basic_config.call_args.kwargs["level"] == logging.INFO
