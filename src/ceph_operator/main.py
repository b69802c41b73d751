"""Main entry point for the Ceph Operator."""

from __future__ import annotations

import os
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .config import k8s_request_timeout
from .tracing import initialize_tracing

# Import handlers to register them
from . import handlers  # noqa: F401


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Keep handler progress out of status, which the handlers own
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = k8s_request_timeout()
    settings.execution.max_workers = int(os.getenv("MAX_WORKERS", "4"))

    health.start_http_server(int(os.getenv("METRICS_PORT", "8080")))
