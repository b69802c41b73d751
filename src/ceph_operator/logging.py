"""JSON-per-line logging for the Ceph Operator."""

import json
import logging
import os
import sys
from typing import Any

# Log fields that may carry cephx key material
REDACTED_FIELDS = frozenset({"key", "keyring"})


def setup_structured_logging() -> None:
    """Log bare messages to stdout at ``ROOK_LOG_LEVEL`` (default INFO)."""
    level = os.getenv("ROOK_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_resource_event(
    logger: logging.Logger,
    level: int,
    resource: dict[str, Any],
    event: str,
    reason: str,
    message: str,
    **fields: Any,
) -> None:
    """Log one resource event as a single JSON document.

    ``resource`` identifies the object (controller, kind, name, namespace,
    uid); extra ``fields`` are appended with key material redacted.
    """
    record = {**resource, "event": event, "reason": reason, "message": message}
    for name, value in fields.items():
        record[name] = "***REDACTED***" if name in REDACTED_FIELDS else value
    logger.log(level, json.dumps(record, default=str))
