"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from .constants import REQUEUE_ON_SUCCESS_SECONDS, REQUEUE_ON_WAIT_SECONDS


@dataclass(frozen=True)
class OperatorConfig:
    """Reconciliation and runtime settings."""

    requeue_on_wait_seconds: float = float(REQUEUE_ON_WAIT_SECONDS)
    requeue_on_success_seconds: float = float(REQUEUE_ON_SUCCESS_SECONDS)
    # kopf cannot retry with a zero delay, so "immediate" retries are floored here
    min_retry_delay_seconds: float = 5.0
    cycle_timeout_seconds: float = 60.0
    max_conflict_retries: int = 3
    metrics_port: int = 8080
    max_workers: int = 4
    request_timeout_seconds: float = 30.0
    watch_namespace: str | None = None

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Load from environment variables."""
        return cls(
            requeue_on_wait_seconds=float(os.getenv("REQUEUE_ON_WAIT_SECONDS", str(REQUEUE_ON_WAIT_SECONDS))),
            requeue_on_success_seconds=float(
                os.getenv("REQUEUE_ON_SUCCESS_SECONDS", str(REQUEUE_ON_SUCCESS_SECONDS))
            ),
            min_retry_delay_seconds=float(os.getenv("MIN_RETRY_DELAY_SECONDS", "5")),
            cycle_timeout_seconds=float(os.getenv("CYCLE_TIMEOUT_SECONDS", "60")),
            max_conflict_retries=int(os.getenv("MAX_CONFLICT_RETRIES", "3")),
            metrics_port=int(os.getenv("METRICS_PORT", "8080")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            request_timeout_seconds=float(os.getenv("K8S_REQUEST_TIMEOUT_SECONDS", "30")),
            watch_namespace=os.getenv("WATCH_NAMESPACE") or None,
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a delay or limit is out of range
        """
        if self.requeue_on_wait_seconds <= 0 or self.requeue_on_success_seconds <= 0:
            raise ValueError("requeue delays must be positive")
        if self.requeue_on_wait_seconds > self.requeue_on_success_seconds:
            raise ValueError("REQUEUE_ON_WAIT_SECONDS must not exceed REQUEUE_ON_SUCCESS_SECONDS")
        if self.cycle_timeout_seconds <= 0:
            raise ValueError("CYCLE_TIMEOUT_SECONDS must be positive")
        if self.max_conflict_retries < 0:
            raise ValueError("MAX_CONFLICT_RETRIES must not be negative")


@lru_cache(maxsize=1)
def get_config() -> OperatorConfig:
    """Get the process-wide configuration."""
    config = OperatorConfig.from_env()
    config.validate()
    return config
