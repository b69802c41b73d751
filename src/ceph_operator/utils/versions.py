"""Ceph version parsing and comparison."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..constants import CEPHX_MIN_ROTATION_VERSION

# Matches "ceph version 20.2.0-123 (...)" as well as a bare "20.2.0-0"
_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)(?:-(\d+))?")


@dataclass(frozen=True, order=True)
class CephVersion:
    """A Ceph release version, ordered by major, minor, extra and build."""

    major: int
    minor: int
    extra: int
    build: int = 0

    @classmethod
    def parse(cls, value: str) -> CephVersion:
        """Parse a version string.

        Raises:
            ValueError: No version could be found in ``value``
        """
        match = _VERSION_RE.search(value or "")
        if match is None:
            raise ValueError(f"failed to parse ceph version from {value!r}")
        major, minor, extra, build = match.groups()
        return cls(int(major), int(minor), int(extra), int(build or 0))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.extra}-{self.build}"

    def is_at_least(self, major: int, minor: int, extra: int) -> bool:
        return (self.major, self.minor, self.extra) >= (major, minor, extra)

    def supports_key_rotation(self) -> bool:
        return self.is_at_least(*CEPHX_MIN_ROTATION_VERSION)
