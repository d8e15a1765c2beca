"""Shared plumbing for the operator's kopf handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

import kopf

from .. import metrics
from ..constants import CONTROLLER_NAME, FINALIZER
from ..logging import log_resource_event
from ..utils.errors import sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_validate_failed

_T = TypeVar("_T")


class BaseHandler:
    """Structured logging, finalizer and metrics helpers bound to one kind.

    Attributes:
        kind: Kubernetes kind handled, used as the metrics and log label
        logger: Logger the structured events are written to
    """

    def __init__(self, kind: str):
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        if error is not None:
            fields["error"] = sanitize_exception(error)
            fields["error_type"] = type(error).__name__
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", "unknown"),
            event=event,
            reason=reason,
            message=message,
            level=level,
            **fields,
        )

    def log_info(
        self, meta: dict[str, Any], message: str, event: str = "info", reason: str = "Info", **fields: Any
    ) -> None:
        """Write an info event for the resource described by ``meta``."""
        self._log(logging.INFO, meta, message, event, reason, **fields)

    def log_warning(
        self, meta: dict[str, Any], message: str, event: str = "warning", reason: str = "Warning", **fields: Any
    ) -> None:
        self._log(logging.WARNING, meta, message, event, reason, **fields)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: BaseException | None = None,
        event: str = "error",
        reason: str = "Error",
        **fields: Any,
    ) -> None:
        """Write an error event.

        Args:
            meta: Resource metadata
            message: Human readable summary
            error: Exception whose sanitized text and type are attached
            event: Event name
            reason: Machine readable reason
            **fields: Extra fields for the JSON document
        """
        self._log(logging.ERROR, meta, message, event, reason, error=error, **fields)

    def handle_validation_error(self, obj: dict[str, Any], error_msg: str) -> None:
        """Report an invalid spec and stop retrying until the object changes.

        Raises:
            kopf.PermanentError: Always
        """
        self.log_error(obj.get("metadata", {}), error_msg, reason="ValidationFailed")
        emit_validate_failed(obj, error_msg)
        metrics.reconcile_total.labels(kind=self.kind, result="failed").inc()
        raise kopf.PermanentError(error_msg)

    def ensure_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        finalizers = list(meta.get("finalizers") or [])
        if FINALIZER not in finalizers:
            patch.metadata["finalizers"] = finalizers + [FINALIZER]

    def remove_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Drop this operator's finalizer, leaving any others in place."""
        finalizers = list(meta.get("finalizers") or [])
        if FINALIZER not in finalizers:
            return
        remaining = [f for f in finalizers if f != FINALIZER]
        patch.metadata["finalizers"] = remaining or None

    def reconcile_with_metrics(self, obj: dict[str, Any], reconcile_fn: Callable[[], _T]) -> _T:
        """Run ``reconcile_fn``, recording its outcome and duration.

        A kopf.TemporaryError is a scheduled retry and is counted as
        "requeued". A kopf.PermanentError has already been reported by
        whoever raised it. Anything else is logged, emitted as a warning
        event and counted as an error.

        Args:
            obj: Resource body, used for logs and events
            reconcile_fn: The reconciliation itself

        Returns:
            Whatever reconcile_fn returns
        """
        meta = obj.get("metadata", {})
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()
        started = time.monotonic()
        try:
            result = reconcile_fn()
        except kopf.TemporaryError as e:
            metrics.reconcile_total.labels(kind=self.kind, result="requeued").inc()
            self.log_warning(meta, str(e), event="requeued", reason="Requeued", delay=e.delay)
            raise
        except kopf.PermanentError:
            raise
        except Exception as e:
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(obj, f"Reconciliation failed: {sanitize_exception(e)}")
            raise
        else:
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            return result
        finally:
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(time.monotonic() - started)

    def update_resource_status(
        self,
        patch: kopf.Patch,
        meta: dict[str, Any],
        ready: bool,
        status_data: dict[str, Any] | None = None,
    ) -> None:
        """Patch status with observedGeneration plus ``status_data``."""
        metrics.resource_status_total.labels(kind=self.kind, status="ready" if ready else "not_ready").inc()
        patch.status.update({"observedGeneration": meta.get("generation", 0), **(status_data or {})})
