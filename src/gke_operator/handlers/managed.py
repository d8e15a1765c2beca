"""Generic lifecycle reconciler for managed resources.

One ManagedReconciler drives every managed kind. Kind-specific behavior
lives in the ExternalClient the connector returns.

A cycle runs Connect, Observe, an optional spec write for late-initialized
fields, then at most one of Create, Update or Delete, and finally a status
write. Nothing is carried over between cycles: each one starts from the
stored resource and the live external object.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from .. import metrics
from ..config import OperatorConfig
from ..constants import (
    COND_READY,
    DELETION_POLICY_RETAIN,
    ERR_CONNECT,
    ERR_CREATE,
    ERR_DELETE,
    ERR_OBSERVE,
    ERR_PUBLISH,
    ERR_UPDATE,
    ERR_UPDATE_SPEC,
    REASON_AVAILABLE,
    REASON_RECONCILE_ERROR,
)
from ..exceptions import ReconcileError, TypeMismatchError, wrap_error
from ..resource import ManagedResource
from ..services.base import ConnectionPublisher, ExternalClient, ExternalConnector, ResourceStore
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import (
    is_condition_true,
    set_creating,
    set_deleting,
    set_reconcile_error,
    set_reconcile_success,
)
from ..utils.context import CycleContext, with_correlation_id
from ..utils.errors import sanitize_error_message
from ..utils.events import (
    emit_connection_published,
    emit_external_created,
    emit_external_deleted,
    emit_external_updated,
    emit_late_initialized,
    emit_reconcile_failed,
)
from ..utils.locks import KeyedLock
from .base import BaseHandler

_T = TypeVar("_T")

NO_UPDATE = "NoUpdate"


@dataclass
class ReconcileResult:
    """When, if at all, the resource should be reconciled again."""

    requeue: bool = False
    requeue_after: float = 0.0
    message: str = ""
    error: ReconcileError | None = None


class ManagedReconciler(BaseHandler):
    """Reconciles one managed kind against its external provider.

    Args:
        kind: Managed resource kind
        connector: Builds an ExternalClient per cycle
        store: Persists spec, status and finalizers
        publisher: Receives connection details, if the kind produces any
        config: Requeue delays and cycle timeout
        locks: Per-resource exclusion shared by all triggers of this kind
        clock: Monotonic clock used for cycle deadlines
    """

    def __init__(
        self,
        kind: str,
        connector: ExternalConnector,
        store: ResourceStore,
        publisher: ConnectionPublisher | None = None,
        config: OperatorConfig | None = None,
        locks: KeyedLock | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(kind)
        self.connector = connector
        self.store = store
        self.publisher = publisher
        self.config = config or OperatorConfig()
        self.locks = locks or KeyedLock()
        self.clock = clock

    def _wait(self, message: str) -> ReconcileResult:
        return ReconcileResult(requeue=True, requeue_after=self.config.requeue_on_wait_seconds, message=message)

    def _stable(self, message: str) -> ReconcileResult:
        return ReconcileResult(requeue=True, requeue_after=self.config.requeue_on_success_seconds, message=message)

    def reconcile(self, resource: ManagedResource) -> ReconcileResult:
        """Run one reconciliation cycle.

        A cycle that finds the resource already being reconciled does
        nothing and asks to be retried shortly.

        Args:
            resource: Snapshot of the managed resource

        Returns:
            ReconcileResult describing when to run again
        """
        with self.locks.hold(resource.key) as acquired:
            if not acquired:
                metrics.reconcile_deferred_total.labels(kind=self.kind).inc()
                self.log_info(resource.meta, "Reconciliation already in progress", reason="Deferred")
                return ReconcileResult(
                    requeue=True,
                    requeue_after=self.config.min_retry_delay_seconds,
                    message="reconciliation already in progress",
                )

            ctx = CycleContext.start(self.config.cycle_timeout_seconds, self.clock)
            with with_correlation_id(ctx.cycle_id):
                return self._run_cycle(resource, ctx)

    def _run_cycle(self, resource: ManagedResource, ctx: CycleContext) -> ReconcileResult:
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()
        start_time = time.time()
        attributes = {"resource.name": resource.name, "resource.namespace": resource.namespace}
        try:
            with trace_span("reconcile_managed", kind=self.kind, attributes=attributes):
                try:
                    if resource.kind != self.kind:
                        raise TypeMismatchError(f"managed resource is not a {self.kind}: got {resource.kind}")
                    if resource.being_deleted:
                        result = self._reconcile_deletion(resource, ctx)
                    else:
                        result = self._reconcile_present(resource, ctx)
                except TypeMismatchError as e:
                    metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
                    metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
                    self.log_error(resource.meta, "Reconciler received the wrong kind", error=e, reason="TypeMismatch")
                    return ReconcileResult(requeue=False, message=str(e), error=e)
                except ReconcileError as e:
                    return self._handle_error(resource, e)
                add_span_attribute("reconcile.requeue_after", result.requeue_after)
        finally:
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(time.time() - start_time)

        metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
        self.log_info(resource.meta, result.message, event="reconciled", reason="ReconcileSuccess",
                      requeue_after=result.requeue_after)
        return result

    def _external_call(self, operation: str, error_message: str, fn: Callable[[], _T]) -> _T:
        """Run one step, tagging failures with the step's error message."""
        with trace_span(f"external_{operation}", kind=self.kind):
            try:
                result = fn()
            except ReconcileError as e:
                metrics.external_operations_total.labels(kind=self.kind, operation=operation, result="error").inc()
                wrapped = wrap_error(e, error_message)
                if wrapped is e:
                    raise
                raise wrapped from e
        metrics.external_operations_total.labels(kind=self.kind, operation=operation, result="success").inc()
        return result

    def _connect(self, resource: ManagedResource, ctx: CycleContext) -> ExternalClient:
        return self._external_call("connect", ERR_CONNECT, lambda: self.connector.connect(resource, ctx))

    def _persist_status(self, resource: ManagedResource) -> None:
        resource.status["observedGeneration"] = resource.generation
        ready = is_condition_true(resource.conditions, COND_READY, REASON_AVAILABLE)
        metrics.resource_status_total.labels(kind=self.kind, status="ready" if ready else "not_ready").inc()
        self.store.update_status(resource)

    def _publish(self, resource: ManagedResource, details: dict[str, Any]) -> None:
        if self.publisher is None or not details or resource.write_connection_secret_to_ref is None:
            return
        published = self._external_call("publish", ERR_PUBLISH, lambda: self.publisher.publish(resource, details))
        if published:
            ref = resource.write_connection_secret_to_ref
            emit_connection_published(resource.object_reference(), ref["name"])

    def _reconcile_deletion(self, resource: ManagedResource, ctx: CycleContext) -> ReconcileResult:
        if resource.deletion_policy == DELETION_POLICY_RETAIN:
            self.log_info(resource.meta, "Deletion policy is Retain, keeping external resource", reason="Retained")
            self.store.remove_finalizer(resource)
            return ReconcileResult(message="external resource retained")

        # record intent before the remote call, which may be slow
        set_deleting(resource.conditions, resource.generation)
        self._persist_status(resource)

        external = self._connect(resource, ctx)
        self._external_call("delete", ERR_DELETE, lambda: external.delete(resource, ctx))
        emit_external_deleted(resource.object_reference(), resource.external_name)

        set_reconcile_success(resource.conditions, resource.generation)
        self._persist_status(resource)
        self.store.remove_finalizer(resource)
        return ReconcileResult(message="external resource deleted")

    def _reconcile_present(self, resource: ManagedResource, ctx: CycleContext) -> ReconcileResult:
        external = self._connect(resource, ctx)
        observation = self._external_call("observe", ERR_OBSERVE, lambda: external.observe(resource, ctx))

        if observation.resource_late_initialized:
            self._external_call("update_spec", ERR_UPDATE_SPEC, lambda: self.store.update_spec(resource))
            metrics.late_initialized_total.labels(kind=self.kind).inc()
            emit_late_initialized(resource.object_reference())

        if not observation.resource_exists:
            self.store.add_finalizer(resource)
            creation = self._external_call("create", ERR_CREATE, lambda: external.create(resource, ctx))
            emit_external_created(resource.object_reference(), resource.external_name)
            set_creating(resource.conditions, resource.generation)
            set_reconcile_success(resource.conditions, resource.generation)
            self._publish(resource, creation.connection_details)
            self._persist_status(resource)
            return self._wait("external resource creation requested")

        self._publish(resource, observation.connection_details)

        if not observation.resource_up_to_date:
            update = self._external_call("update", ERR_UPDATE, lambda: external.update(resource, ctx))
            if update.update_kind and update.update_kind != NO_UPDATE:
                metrics.drift_detected_total.labels(kind=self.kind, update_kind=update.update_kind).inc()
                emit_external_updated(resource.object_reference(), resource.external_name, update.update_kind)
            self._publish(resource, update.connection_details)
            set_reconcile_success(resource.conditions, resource.generation)
            self._persist_status(resource)
            return self._wait(f"applied {update.update_kind or 'update'} to external resource")

        set_reconcile_success(resource.conditions, resource.generation)
        self._persist_status(resource)
        if is_condition_true(resource.conditions, COND_READY, REASON_AVAILABLE):
            return self._stable("external resource is up to date")
        return self._wait("waiting for external resource to become available")

    def _handle_error(self, resource: ManagedResource, error: ReconcileError) -> ReconcileResult:
        message = sanitize_error_message(str(error))
        set_reconcile_error(resource.conditions, message, resource.generation)

        metrics.error_total.labels(kind=self.kind, error_type=type(error).__name__).inc()
        metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
        self.log_error(resource.meta, "Reconciliation failed", error=error, reason=REASON_RECONCILE_ERROR)
        emit_reconcile_failed(resource.object_reference(), f"Reconciliation failed: {message}")

        try:
            self._persist_status(resource)
        except ReconcileError as persist_error:
            self.log_warning(
                resource.meta,
                f"Could not record failure in status: {sanitize_error_message(str(persist_error))}",
                reason="StatusWriteFailed",
            )

        return ReconcileResult(requeue=True, requeue_after=0.0, message=message, error=error)
