"""Cephx daemon key state tracking and rotation decisions."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .. import metrics
from ..constants import CEPHX_ROTATION_POLICY_KEY_GENERATION
from ..services.ceph.client import CephClient
from .versions import CephVersion

logger = logging.getLogger(__name__)


class CephxState(str, enum.Enum):
    """What is recorded about a daemon key."""

    NO_KEY = "NoKey"
    UNKNOWN = "Unknown"
    KNOWN = "Known"


@dataclass(frozen=True)
class CephxStatus:
    """Recorded key state of a daemon: ``status.cephx.daemon``.

    ``NO_KEY`` means the key was never created by this operator, ``UNKNOWN``
    means a key exists but its generation was never recorded.
    """

    state: CephxState
    key_generation: int = 0
    key_ceph_version: str = ""

    @classmethod
    def no_key(cls) -> CephxStatus:
        return cls(CephxState.NO_KEY)

    @classmethod
    def unknown(cls) -> CephxStatus:
        return cls(CephxState.UNKNOWN)

    @classmethod
    def known(cls, key_generation: int, key_ceph_version: str) -> CephxStatus:
        return cls(CephxState.KNOWN, key_generation, key_ceph_version)

    @classmethod
    def from_status(cls, status: dict[str, Any] | None) -> CephxStatus:
        """Read the daemon key state from a resource status."""
        cephx = (status or {}).get("cephx") or {}
        if "daemon" not in cephx or cephx["daemon"] is None:
            return cls.no_key()
        daemon = cephx["daemon"]
        if not daemon:
            return cls.unknown()
        return cls.known(int(daemon.get("keyGeneration", 0)), str(daemon.get("keyCephVersion", "")))

    def to_dict(self) -> dict[str, Any] | None:
        """Status document for ``status.cephx.daemon``; None for ``NO_KEY``."""
        if self.state == CephxState.NO_KEY:
            return None
        if self.state == CephxState.UNKNOWN:
            return {}
        return {"keyGeneration": self.key_generation, "keyCephVersion": self.key_ceph_version}

    @property
    def current_generation(self) -> int:
        return self.key_generation if self.state == CephxState.KNOWN else 0


@dataclass(frozen=True)
class RotationPolicy:
    """Whether rotation is possible and which generation is wanted."""

    enabled: bool
    target_generation: int


def rotation_policy(cluster_spec: dict[str, Any], running: CephVersion, desired: CephVersion) -> RotationPolicy:
    """Derive the daemon key rotation policy of a cluster.

    Rotation is only enabled when both the running and the desired Ceph
    versions support it; the target generation is only meaningful under the
    ``KeyGeneration`` policy.
    """
    daemon = (((cluster_spec or {}).get("security") or {}).get("cephx") or {}).get("daemon") or {}
    target = 0
    if daemon.get("keyRotationPolicy") == CEPHX_ROTATION_POLICY_KEY_GENERATION:
        target = int(daemon.get("keyGeneration") or 0)
    enabled = running.supports_key_rotation() and desired.supports_key_rotation()
    return RotationPolicy(enabled=enabled, target_generation=target)


def should_rotate(status: CephxStatus, policy: RotationPolicy) -> bool:
    """Decide whether a key must be rotated on this pass."""
    if not policy.enabled or status.state == CephxState.NO_KEY:
        return False
    return policy.target_generation > status.current_generation


def settled_status(status: CephxStatus, policy: RotationPolicy, running_version: CephVersion) -> CephxStatus:
    """Key state recorded once every daemon key of a pass is reconciled."""
    if should_rotate(status, policy):
        return CephxStatus.known(policy.target_generation, str(running_version))
    if status.state == CephxState.NO_KEY:
        return CephxStatus.known(1, str(running_version))
    return status


@dataclass(frozen=True)
class RotationProgress:
    """Entities already rotated towards a target: ``status.cephx.rotation``.

    Written when a pass fails part way so the retry does not rotate the same
    key twice; cleared once a pass completes.
    """

    target_generation: int = 0
    entities: tuple[str, ...] = ()

    @classmethod
    def from_status(cls, status: dict[str, Any] | None) -> RotationProgress:
        rotation = ((status or {}).get("cephx") or {}).get("rotation") or {}
        return cls(int(rotation.get("targetGeneration") or 0), tuple(rotation.get("rotatedEntities") or ()))

    def rotated_towards(self, target_generation: int) -> tuple[str, ...]:
        """Entities rotated towards ``target_generation``; empty for any other target."""
        return self.entities if self.target_generation == target_generation else ()

    def to_dict(self) -> dict[str, Any]:
        return {"targetGeneration": self.target_generation, "rotatedEntities": list(self.entities)}


@dataclass(frozen=True)
class KeyOutcome:
    """Result of reconciling one key."""

    key: str
    status: CephxStatus
    rotated: bool


class KeyRotator:
    """Apply rotation decisions against the cluster."""

    def __init__(self, ceph: CephClient, entity_type: str = "mds") -> None:
        self.ceph = ceph
        self.entity_type = entity_type

    def reconcile_key(
        self,
        entity: str,
        caps: list[str],
        status: CephxStatus,
        policy: RotationPolicy,
        running_version: CephVersion,
        rotate: bool = True,
    ) -> KeyOutcome:
        """Rotate, create or confirm the key of ``entity``.

        Rotation is not idempotent, so the rotate command runs at most once
        per call. A key without a recorded generation is never re-derived
        from the stored material. With ``rotate`` False the key is fetched
        or created as-is, for entities already at the target or whose key
        does not exist yet.
        """
        settled = settled_status(status, policy, running_version)
        if rotate and should_rotate(status, policy):
            key = self.ceph.rotate_key(entity)
            metrics.key_rotations_total.labels(entity_type=self.entity_type).inc()
            logger.info(f"rotated cephx key for {entity!r} to generation {policy.target_generation}")
            return KeyOutcome(key, settled, True)

        return KeyOutcome(self.ceph.get_or_create_key(entity, caps), settled, False)


class VersionSource(Protocol):
    """Provides the running and desired Ceph versions of a cluster."""

    def versions(self, cluster: dict[str, Any]) -> tuple[CephVersion, CephVersion]:
        ...


class CephVersionSource:
    """Running version from the monitors, desired version from the cluster status."""

    def __init__(self, ceph: CephClient) -> None:
        self.ceph = ceph

    def versions(self, cluster: dict[str, Any]) -> tuple[CephVersion, CephVersion]:
        running = self.ceph.lowest_mon_version()
        desired_raw = ((cluster.get("status") or {}).get("version") or {}).get("version")
        if not desired_raw:
            return running, running
        try:
            return running, CephVersion.parse(desired_raw)
        except ValueError:
            logger.warning(f"failed to parse desired ceph version {desired_raw!r}, using running version")
            return running, running


def generate_keyring(entity: str, key: str, caps: list[str]) -> str:
    """Render a keyring file for one entity.

    ``caps`` is the flat ``[service, cap, service, cap, ...]`` list passed to
    ``auth get-or-create-key``.
    """
    lines = [f"[{entity}]", f"key = {key}"]
    for service, cap in zip(caps[0::2], caps[1::2]):
        lines.append(f'caps {service} = "{cap}"')
    return "\n".join(lines) + "\n"
