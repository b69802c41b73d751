"""Tests for Ceph version parsing."""

from __future__ import annotations

import pytest

from ceph_operator.utils.versions import CephVersion


class TestCephVersion:
    """Test cases for CephVersion."""

    def test_parse_bare(self):
        assert CephVersion.parse("20.2.0-0") == CephVersion(20, 2, 0, 0)

    def test_parse_ceph_versions_description(self):
        description = "ceph version 19.2.1-5 (58a7fab8be0a062d730ad7da874972fd3fba59fb) squid (stable)"
        assert CephVersion.parse(description) == CephVersion(19, 2, 1, 5)

    def test_parse_without_build(self):
        assert CephVersion.parse("18.2.4") == CephVersion(18, 2, 4, 0)

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            CephVersion.parse("quincy")

    def test_str(self):
        assert str(CephVersion(20, 2, 0)) == "20.2.0-0"

    def test_ordering(self):
        assert CephVersion(19, 2, 9) < CephVersion(20, 2, 0)
        assert min(CephVersion(20, 2, 1), CephVersion(20, 2, 0, 3)) == CephVersion(20, 2, 0, 3)

    @pytest.mark.parametrize(
        "version, supported",
        [("19.2.3-0", False), ("20.1.9-0", False), ("20.2.0-0", True), ("21.0.0-0", True)],
    )
    def test_supports_key_rotation(self, version, supported):
        assert CephVersion.parse(version).supports_key_rotation() is supported
