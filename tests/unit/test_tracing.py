"""Tests for tracing helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ceph_operator import tracing


class TestTraceSpan:
    """Test cases for trace_span without a configured tracer."""

    def test_yields_none_when_disabled(self):
        with patch.object(tracing, "_tracer", None):
            with tracing.trace_span("reconcile_filesystem", kind="CephFilesystem") as span:
                assert span is None

    def test_exceptions_propagate(self):
        with patch.object(tracing, "_tracer", None):
            with pytest.raises(ValueError):
                with tracing.trace_span("reconcile_filesystem"):
                    raise ValueError("boom")

    def test_add_span_attribute_without_span(self):
        tracing.add_span_attribute("cephx.target_generation", 2)

    @patch.dict("os.environ", {"OTEL_TRACES_ENABLED": "false"})
    def test_initialize_disabled(self):
        with patch.object(tracing, "_tracer", None):
            tracing.initialize_tracing()
            assert tracing.get_tracer() is None
