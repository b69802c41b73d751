"""Rate limiting utilities for Kubernetes and ceph CLI calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

MAX_RATE_LIMIT_RETRIES = 3


class _Throttle:
    """Enforce a minimum interval between calls across threads."""

    def __init__(self, api_type: str, per_second: float) -> None:
        self.api_type = api_type
        self.min_interval = 1.0 / per_second if per_second > 0 else 0.0
        self._last_call = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_call
            if elapsed < self.min_interval:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
                time.sleep(self.min_interval - elapsed)
            self._last_call = time.monotonic()


_k8s_throttle = _Throttle("k8s", float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0")))
_ceph_throttle = _Throttle("ceph", float(os.getenv("CEPH_RATE_LIMIT_PER_SECOND", "5.0")))


def _throttled(throttle: _Throttle) -> Callable[[_F], _F]:
    def decorator(func: _F) -> _F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            throttle.wait()
            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""
    return _throttled(_k8s_throttle)(func)


def rate_limit_ceph(func: _F) -> _F:
    """Decorator to rate limit ceph CLI invocations."""
    return _throttled(_ceph_throttle)(func)


def is_rate_limit_error(e: BaseException) -> bool:
    """Check whether an exception is an API server throttling response."""
    if not isinstance(e, ApiException):
        return False
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())


def handle_rate_limit_error(e: BaseException, attempt: int, max_retries: int = MAX_RATE_LIMIT_RETRIES) -> bool:
    """Back off after a throttling response.

    Args:
        e: Exception raised by the API call
        attempt: Zero-based retry attempt
        max_retries: Maximum number of retries

    Returns:
        True if the caller should retry, False otherwise
    """
    if not is_rate_limit_error(e) or attempt >= max_retries:
        return False
    # Exponential backoff: 1s, 2s, 4s
    time.sleep(2**attempt)
    return True
