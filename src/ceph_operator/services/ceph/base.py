"""Cluster command execution interface."""

from __future__ import annotations

from typing import Protocol


class CommandExecutor(Protocol):
    """Protocol for running a cluster command and returning its output."""

    def execute(self, args: list[str], timeout: float | None = None) -> str:
        """Run the command and return stdout.

        Raises:
            ExternalCommandFailed: The command exited non-zero or timed out
        """
        ...
