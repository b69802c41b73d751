"""Ceph CLI command execution and typed wrappers."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from typing import Any

from ... import metrics
from ...utils.errors import ExternalCommandFailed
from ...utils.rate_limit import rate_limit_ceph
from ...utils.versions import CephVersion
from .base import CommandExecutor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "/var/lib/rook"


class CephCLI:
    """Run ``ceph`` commands against the cluster of one namespace."""

    def __init__(
        self,
        cluster_namespace: str,
        binary: str = "ceph",
        config_dir: str = DEFAULT_CONFIG_DIR,
    ) -> None:
        self.cluster_namespace = cluster_namespace
        self.binary = binary
        self.config_dir = config_dir

    def base_args(self) -> list[str]:
        ns = self.cluster_namespace
        return [
            self.binary,
            f"--cluster={ns}",
            f"--conf={self.config_dir}/{ns}/{ns}.config",
            "--name=client.admin",
            f"--keyring={self.config_dir}/{ns}/client.admin.keyring",
            "--format",
            "json",
        ]

    def execute(self, args: list[str], timeout: float | None = None) -> str:
        command = self.base_args() + list(args)
        operation = "_".join(args[:2]) or "ceph"
        start_time = time.time()
        try:
            completed = rate_limit_ceph(subprocess.run)(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            metrics.api_call_total.labels(api_type="ceph", operation=operation, result="timeout").inc()
            raise ExternalCommandFailed(args, f"timed out after {timeout}s") from e
        except OSError as e:
            metrics.api_call_total.labels(api_type="ceph", operation=operation, result="error").inc()
            raise ExternalCommandFailed(args, str(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="ceph", operation=operation).observe(duration)

        if completed.returncode != 0:
            metrics.api_call_total.labels(api_type="ceph", operation=operation, result="error").inc()
            raise ExternalCommandFailed(args, f"exit code {completed.returncode}: {completed.stderr.strip()}")

        metrics.api_call_total.labels(api_type="ceph", operation=operation, result="success").inc()
        return completed.stdout


def _parse_json(args: list[str], output: str) -> Any:
    try:
        return json.loads(output)
    except ValueError as e:
        raise ExternalCommandFailed(args, f"failed to parse command output: {e}") from e


def _extract_key(args: list[str], parsed: Any) -> str:
    # ``auth rotate`` answers with a one-element list, ``get-or-create-key`` with an object
    if isinstance(parsed, list):
        if len(parsed) != 1:
            raise ExternalCommandFailed(args, f"expected one key entry, got {len(parsed)}")
        parsed = parsed[0]
    if not isinstance(parsed, dict) or not parsed.get("key"):
        raise ExternalCommandFailed(args, "command output carries no key")
    return str(parsed["key"])


class CephClient:
    """Typed wrappers over a CommandExecutor."""

    def __init__(self, executor: CommandExecutor, timeout: float | None = None) -> None:
        self.executor = executor
        self.timeout = timeout

    def _run(self, args: list[str]) -> Any:
        return _parse_json(args, self.executor.execute(args, timeout=self.timeout))

    def get_or_create_key(self, entity: str, caps: list[str]) -> str:
        """Return the key of ``entity``, creating it with ``caps`` if needed."""
        args = ["auth", "get-or-create-key", entity, *caps]
        return _extract_key(args, self._run(args))

    def rotate_key(self, entity: str) -> str:
        """Replace the key of ``entity`` and return the new key. Not idempotent."""
        args = ["auth", "rotate", entity]
        return _extract_key(args, self._run(args))

    def versions(self) -> dict[str, Any]:
        """Output of ``ceph versions``."""
        return self._run(["versions"])

    def lowest_mon_version(self) -> CephVersion:
        """Lowest Ceph version among the running monitors.

        Raises:
            ExternalCommandFailed: No monitor version was reported
        """
        mons = self.versions().get("mon") or {}
        found = []
        for description in mons:
            try:
                found.append(CephVersion.parse(description))
            except ValueError:
                logger.debug(f"ignoring unparsable mon version {description!r}")
        if not found:
            raise ExternalCommandFailed(["versions"], "no monitor versions reported")
        return min(found)
