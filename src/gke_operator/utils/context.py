"""Context propagation for correlation IDs and cycle deadlines."""

from __future__ import annotations

import contextvars
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from opentelemetry import trace

from ..exceptions import DeadlineExceededError

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def new_correlation_id() -> str:
    """Generate a short correlation ID."""
    return uuid.uuid4().hex[:16]


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use

    Yields:
        The correlation ID
    """
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


def propagate_trace_context() -> dict[str, Any] | None:
    """Get the current OpenTelemetry trace identifiers, if a span is recording."""
    span = trace.get_current_span()
    if span is None or not span.is_recording():
        return None
    span_context = span.get_span_context()
    if not span_context.is_valid:
        return None
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with correlation_id and trace identifiers when available
    """
    ctx: dict[str, Any] = {}

    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id

    trace_ctx = propagate_trace_context()
    if trace_ctx:
        ctx.update(trace_ctx)

    if additional:
        ctx.update(additional)

    return ctx


@dataclass
class CycleContext:
    """Deadline and clock for one reconciliation cycle.

    Every remote call attempt checks the deadline before it starts and is
    capped to the time remaining.
    """

    deadline: float
    clock: Callable[[], float] = time.monotonic
    cycle_id: str = field(default_factory=new_correlation_id)

    @classmethod
    def start(
        cls,
        timeout: float,
        clock: Callable[[], float] = time.monotonic,
        cycle_id: str | None = None,
    ) -> CycleContext:
        """Open a cycle that expires ``timeout`` seconds from now."""
        return cls(
            deadline=clock() + timeout,
            clock=clock,
            cycle_id=cycle_id or new_correlation_id(),
        )

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self.deadline - self.clock())

    def expired(self) -> bool:
        return self.clock() >= self.deadline

    def check(self, operation: str) -> None:
        """Fail fast when the cycle has run out of time.

        Raises:
            DeadlineExceededError: If the deadline has passed
        """
        if self.expired():
            raise DeadlineExceededError("reconcile cycle deadline exceeded", operation=operation)
