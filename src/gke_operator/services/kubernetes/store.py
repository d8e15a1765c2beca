"""Persistence of managed resource changes through the Kubernetes API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from kubernetes.client.exceptions import ApiException

from ...constants import (
    API_GROUP,
    API_VERSION,
    ERR_ADD_FINALIZER,
    ERR_REMOVE_FINALIZER,
    ERR_UPDATE_SPEC,
    ERR_UPDATE_STATUS,
    FINALIZER,
)
from ...exceptions import PersistenceConflictError, ReconcileError
from ...resource import ManagedResource
from ...utils.late_init import late_initialize_object
from .api import call_k8s

logger = logging.getLogger(__name__)

DEFAULT_MAP_FIELDS = frozenset({"labels", "metadata", "resourceLabels"})


class KubernetesResourceStore:
    """Writes spec, status and finalizers of one custom resource plural.

    Spec and finalizer writes carry the resourceVersion the reconciler
    read. On a conflict the object is re-read, the local change is
    re-applied to the fresh copy and the write is retried.
    """

    def __init__(
        self,
        api: Any,
        plural: str,
        max_conflict_retries: int = 3,
        map_fields: Iterable[str] = DEFAULT_MAP_FIELDS,
    ):
        self.api = api
        self.plural = plural
        self.max_conflict_retries = max_conflict_retries
        self.map_fields = frozenset(map_fields)

    def _coords(self, resource: ManagedResource) -> dict[str, str]:
        return {
            "group": API_GROUP,
            "version": API_VERSION,
            "namespace": resource.namespace,
            "plural": self.plural,
            "name": resource.name,
        }

    def _read(self, resource: ManagedResource) -> dict[str, Any]:
        return call_k8s("get_managed", self.api.get_namespaced_custom_object, **self._coords(resource))

    def _patch_with_retry(
        self,
        resource: ManagedResource,
        operation: str,
        build_body: Callable[[], dict[str, Any]],
        refresh: Callable[[dict[str, Any]], None],
    ) -> dict[str, Any] | None:
        for attempt in range(self.max_conflict_retries + 1):
            body = build_body()
            body.setdefault("metadata", {})["resourceVersion"] = resource.resource_version
            try:
                obj = call_k8s(
                    operation, self.api.patch_namespaced_custom_object, body=body, **self._coords(resource)
                )
            except ApiException as e:
                if e.status != 409:
                    raise ReconcileError(str(e.reason or e), operation=operation, cause=e) from e
                logger.info(f"conflict writing {resource.key} (attempt {attempt + 1}), re-reading")
                try:
                    latest = self._read(resource)
                except ApiException as read_err:
                    raise ReconcileError(str(read_err.reason or read_err), operation=operation, cause=read_err) from read_err
                refresh(latest)
                resource.resource_version = (latest.get("metadata") or {}).get("resourceVersion")
                continue
            resource.resource_version = (obj.get("metadata") or {}).get("resourceVersion", resource.resource_version)
            return obj
        raise PersistenceConflictError(
            f"resource changed {self.max_conflict_retries + 1} times while writing",
            operation=operation,
        )

    def update_spec(self, resource: ManagedResource) -> None:
        """Persist ``spec.forProvider`` after late-initialization.

        On conflict the fresh forProvider keeps every field the user set,
        and only its unset fields are filled from the local copy.
        """

        def refresh(latest: dict[str, Any]) -> None:
            latest_spec = dict(latest.get("spec") or {})
            fresh = latest_spec.get("forProvider") or {}
            latest_spec["forProvider"] = late_initialize_object(fresh, resource.for_provider, self.map_fields) or {}
            resource.spec = latest_spec

        self._patch_with_retry(
            resource,
            ERR_UPDATE_SPEC,
            lambda: {"spec": {"forProvider": resource.for_provider}},
            refresh,
        )

    def update_status(self, resource: ManagedResource) -> None:
        """Persist the status subresource. Status writes are last-writer-wins."""
        try:
            call_k8s(
                "patch_status",
                self.api.patch_namespaced_custom_object_status,
                body={"status": resource.status},
                **self._coords(resource),
            )
        except ApiException as e:
            if e.status == 404 and resource.being_deleted:
                return
            raise ReconcileError(str(e.reason or e), operation=ERR_UPDATE_STATUS, cause=e) from e

    def add_finalizer(self, resource: ManagedResource) -> None:
        if FINALIZER in resource.finalizers:
            return

        def refresh(latest: dict[str, Any]) -> None:
            resource.finalizers = list((latest.get("metadata") or {}).get("finalizers") or [])

        self._patch_with_retry(
            resource,
            ERR_ADD_FINALIZER,
            lambda: {"metadata": {"finalizers": resource.finalizers + [FINALIZER]}},
            refresh,
        )
        resource.finalizers.append(FINALIZER)

    def remove_finalizer(self, resource: ManagedResource) -> None:
        if FINALIZER not in resource.finalizers:
            return

        def refresh(latest: dict[str, Any]) -> None:
            resource.finalizers = list((latest.get("metadata") or {}).get("finalizers") or [])

        try:
            self._patch_with_retry(
                resource,
                ERR_REMOVE_FINALIZER,
                lambda: {"metadata": {"finalizers": [f for f in resource.finalizers if f != FINALIZER]}},
                refresh,
            )
        except ReconcileError as e:
            cause = e.cause
            if isinstance(cause, ApiException) and cause.status == 404:
                return
            raise
        resource.finalizers = [f for f in resource.finalizers if f != FINALIZER]
