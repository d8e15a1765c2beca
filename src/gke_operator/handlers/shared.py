"""Wiring shared by the managed resource handlers."""

from __future__ import annotations

from typing import Any, Callable, Iterable

import kopf

from ..builders.provider import ProviderConnector
from ..config import OperatorConfig, get_config
from ..resource import ManagedResource
from ..services.base import ExternalClient
from ..services.gcp.client import ContainerClient
from ..services.kubernetes.api import get_core_client, get_k8s_client
from ..services.kubernetes.publisher import SecretConnectionPublisher
from ..services.kubernetes.store import KubernetesResourceStore
from .managed import ManagedReconciler, ReconcileResult


def build_reconciler(
    kind: str,
    plural: str,
    external_factory: Callable[[ContainerClient], ExternalClient],
    map_fields: Iterable[str] = (),
) -> ManagedReconciler:
    """Assemble a reconciler backed by the live Kubernetes API.

    Args:
        kind: Managed resource kind
        plural: Plural name of the kind's custom resource
        external_factory: Builds the kind's ExternalClient around a container client
        map_fields: forProvider fields merged key by key during late-init

    Returns:
        ManagedReconciler for the kind
    """
    config = get_config()
    custom_api = get_k8s_client()
    core_api = get_core_client()
    return ManagedReconciler(
        kind,
        connector=ProviderConnector(external_factory, custom_api, core_api),
        store=KubernetesResourceStore(
            custom_api,
            plural,
            max_conflict_retries=config.max_conflict_retries,
            map_fields=frozenset(map_fields),
        ),
        publisher=SecretConnectionPublisher(core_api),
        config=config,
    )


def to_kopf_outcome(result: ReconcileResult, config: OperatorConfig | None = None) -> None:
    """Translate a reconcile result into kopf's retry semantics.

    Success returns normally and the kind's timer runs the next cycle.
    Anything that wants to come back sooner is raised as a temporary error
    carrying the delay.

    Raises:
        kopf.PermanentError: If the error cannot be fixed by retrying
        kopf.TemporaryError: If the resource should be reconciled again soon
    """
    config = config or get_config()
    if result.error is not None and not result.error.retryable:
        raise kopf.PermanentError(result.message or str(result.error))

    if result.error is not None or (result.requeue and result.requeue_after < config.requeue_on_success_seconds):
        delay = max(result.requeue_after, config.min_retry_delay_seconds)
        raise kopf.TemporaryError(result.message or "requeued", delay=delay)


def run_reconcile(reconciler: ManagedReconciler, body: Any, config: OperatorConfig | None = None) -> None:
    """Reconcile one kopf body and report the outcome back to kopf."""
    result = reconciler.reconcile(ManagedResource.from_body(body))
    to_kopf_outcome(result, config)
