"""Client-side rate limiting for Kubernetes and container API calls."""

from __future__ import annotations

import logging
import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from googleapiclient.errors import HttpError
from kubernetes.client.exceptions import ApiException

from .. import metrics
from .context import CycleContext

_F = TypeVar("_F", bound=Callable[..., Any])
_T = TypeVar("_T")

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces calls at least ``1 / rate`` seconds apart across threads."""

    def __init__(self, rate_per_second: float):
        self.min_interval = 1.0 / rate_per_second if rate_per_second > 0 else 0.0
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self) -> float:
        """Block until the next call slot. Returns the time slept."""
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
        delay = slot - now
        if delay > 0:
            time.sleep(delay)
        return delay


_k8s_limiter = RateLimiter(float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0")))
_gcp_limiter = RateLimiter(float(os.getenv("GCP_RATE_LIMIT_PER_SECOND", "5.0")))


def _limited(limiter: RateLimiter, func: _F) -> _F:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        limiter.wait()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""
    return _limited(_k8s_limiter, func)


def rate_limit_gcp(func: _F) -> _F:
    """Decorator to rate limit container API calls."""
    return _limited(_gcp_limiter, func)


def error_status(err: BaseException) -> int | None:
    """Extract the HTTP status from a Kubernetes or Google API error."""
    if isinstance(err, ApiException):
        return err.status
    if isinstance(err, HttpError):
        return getattr(err, "status_code", None) or int(err.resp.status)
    return None


def is_rate_limit_error(err: BaseException) -> bool:
    """Check whether an error is a server-side throttling response."""
    status = error_status(err)
    if status == 429:
        return True
    return status == 503 and "rate limit" in str(err).lower()


def call_with_rate_limit_retry(
    api_type: str,
    func: Callable[..., _T],
    *args: Any,
    max_retries: int = 3,
    cycle: CycleContext | None = None,
    operation: str | None = None,
    **kwargs: Any,
) -> _T:
    """Call ``func``, backing off exponentially on throttling responses.

    With a cycle, every attempt checks its deadline first and no backoff
    sleeps past it.

    Args:
        api_type: Label for the rate limit metric ("k8s" or "gcp")
        func: Callable performing the API call
        max_retries: Retries allowed after the first attempt
        cycle: Reconcile cycle bounding the attempts
        operation: Operation name reported when the deadline passes

    Returns:
        Whatever ``func`` returns

    Raises:
        DeadlineExceededError: If the cycle deadline passes between attempts
        Exception: The last error once retries are exhausted, or any
            non-throttling error immediately
    """
    attempt = 0
    while True:
        if cycle is not None:
            cycle.check(operation or api_type)
        try:
            return func(*args, **kwargs)
        except (ApiException, HttpError) as e:
            if not is_rate_limit_error(e) or attempt >= max_retries:
                raise
            metrics.rate_limit_hits_total.labels(api_type=api_type).inc()
            sleep_time = 2 ** attempt
            if cycle is not None:
                sleep_time = min(sleep_time, cycle.remaining())
            logger.warning(f"{api_type} API throttled, retrying in {sleep_time}s")
            time.sleep(sleep_time)
            attempt += 1
