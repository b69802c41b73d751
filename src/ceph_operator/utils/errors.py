"""Reconcile error types and error sanitization utilities."""

from __future__ import annotations

import re
from typing import Any

import kopf

# Patterns that might expose key material
SENSITIVE_PATTERNS = [
    r"key\s*=\s*([A-Za-z0-9/+=]{20,})",
    r"\"key\"\s*:\s*\"([A-Za-z0-9/+=]+)\"",
    r"(AQ[A-Za-z0-9/+]{30,}={0,2})",
]


class ReconcileError(kopf.TemporaryError):
    """Base class for failures that are retried with backoff."""

    def __init__(self, message: str, delay: float | None = None) -> None:
        if delay is None:
            super().__init__(message)
        else:
            super().__init__(message, delay=delay)


class ResourceError(ReconcileError):
    """A remote object store call failed for one resource identity."""

    action = "access"

    def __init__(self, kind: str, namespace: str | None, name: str, cause: Exception | None = None) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.cause = cause
        identity = f"{namespace}/{name}" if namespace else name
        message = f"failed to {self.action} {kind} {identity!r}"
        if cause is not None:
            message = f"{message}: {sanitize_exception(cause)}"
        super().__init__(message)


class FetchFailed(ResourceError):
    """Fetching a resource failed with something other than not-found."""

    action = "get"


class CreateFailed(ResourceError):
    """Creating an absent resource failed."""

    action = "create"


class UpdateFailed(ResourceError):
    """Writing back a fetched resource failed."""

    action = "update"


class SerializationFailed(ReconcileError):
    """An ownership key could not be encoded."""


class ExternalCommandFailed(ReconcileError):
    """The cluster command collaborator exited non-zero or returned unparsable output."""

    def __init__(self, args: list[str], message: str) -> None:
        self.command_args = list(args)
        super().__init__(f"command {' '.join(args)!r} failed: {sanitize_error_message(message)}")


class Requeue(kopf.TemporaryError):
    """Not a failure: kopf retries the handler after ``delay`` seconds."""

    def __init__(self, message: str, delay: float) -> None:
        super().__init__(message, delay=delay)


class ClusterNotReady(Requeue):
    """The CephCluster of the namespace is missing or not ready yet."""


class DependentsBlocked(Requeue):
    """Deletion is waiting for dependent objects to go away.

    Raising it from a deletion handler keeps the finalizer in place.
    """

    def __init__(self, kind: str, name: str, dependents: Any, delay: float) -> None:
        self.dependents = dependents
        super().__init__(
            f"{kind} {name!r} cannot be deleted while dependents exist: {dependents}",
            delay=delay,
        )


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove key material.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with key material redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized)

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))
