"""Handler for Provider CRD."""

from __future__ import annotations

from typing import Any

import kopf
from google.oauth2 import service_account
from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..builders.provider import read_provider_credentials, validate_provider_spec
from ..config import get_config
from ..constants import API_GROUP_VERSION, CLOUD_PLATFORM_SCOPE, KIND_PROVIDER
from ..services.kubernetes.api import get_core_client
from ..tracing import trace_span
from ..utils.cache import invalidate_cache, make_cache_key
from ..utils.conditions import set_credentials_valid_condition, set_ready_condition
from ..utils.errors import sanitize_exception
from ..utils.events import emit_validate_succeeded
from .base import BaseHandler


class ProviderHandler(BaseHandler):
    """Handler for Provider resources.

    A Provider holds no external state. Reconciling it only checks that
    its credentials secret contains a usable service account key, so that
    a broken Provider shows up on the Provider rather than on every
    resource that references it.
    """

    def __init__(self, core_api: Any = None):
        super().__init__(KIND_PROVIDER)
        self._core_api = core_api

    @property
    def core_api(self) -> Any:
        if self._core_api is None:
            self._core_api = get_core_client()
        return self._core_api

    def reconcile(
        self,
        body: dict[str, Any],
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Reconcile Provider resource.

        Raises:
            kopf.PermanentError: If the spec is invalid
            kopf.TemporaryError: If the credentials cannot be used yet
        """
        name = meta.get("name", "unknown")
        namespace = meta.get("namespace", "default")

        with trace_span("reconcile_provider", kind=KIND_PROVIDER, attributes={"provider.name": name}):
            try:
                validate_provider_spec(spec)
            except ValueError as e:
                self.handle_validation_error(body, str(e))

            emit_validate_succeeded(body)
            # referencing resources must see the new spec on their next cycle
            invalidate_cache(make_cache_key(KIND_PROVIDER, namespace, name))

            conditions = list(status.get("conditions", []))
            with trace_span("check_credentials", kind=KIND_PROVIDER):
                try:
                    info = read_provider_credentials(self.core_api, spec, namespace)
                    service_account.Credentials.from_service_account_info(info, scopes=[CLOUD_PLATFORM_SCOPE])
                    credentials_valid = True
                    credentials_message = f"Service account {info['client_email']} loaded"
                except (ValueError, ApiException) as e:
                    credentials_valid = False
                    sanitized_error = sanitize_exception(e)
                    credentials_message = f"Credentials are not usable: {sanitized_error}"
                    metrics.error_total.labels(kind=KIND_PROVIDER, error_type=type(e).__name__).inc()
                    self.log_error(meta, credentials_message, error=e, reason="CredentialsInvalid")

            generation = meta.get("generation")
            conditions = set_credentials_valid_condition(
                conditions, credentials_valid, credentials_message, generation
            )
            ready_message = "Provider is ready" if credentials_valid else "Provider is not ready"
            conditions = set_ready_condition(conditions, credentials_valid, ready_message, generation)

            self.update_resource_status(
                patch,
                meta,
                credentials_valid,
                {"projectID": spec["projectID"], "conditions": conditions},
            )

            if not credentials_valid:
                raise kopf.TemporaryError(credentials_message, delay=get_config().requeue_on_wait_seconds)

    def delete(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Handle Provider resource deletion."""
        self.log_info(meta, "Provider is being deleted", event="deletion", reason="Deletion")
        invalidate_cache(make_cache_key(KIND_PROVIDER, meta.get("namespace", "default"), meta.get("name", "unknown")))
        self.remove_finalizer(meta, patch)


# Global handler instance
_handler = ProviderHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_PROVIDER)
@kopf.on.update(API_GROUP_VERSION, KIND_PROVIDER)
@kopf.on.resume(API_GROUP_VERSION, KIND_PROVIDER)
def handle_provider(
    body: kopf.Body,
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle Provider resource reconciliation."""
    _handler.ensure_finalizer(meta, patch)
    _handler.reconcile_with_metrics(body, lambda: _handler.reconcile(body, spec, meta, status, patch))


@kopf.on.delete(API_GROUP_VERSION, KIND_PROVIDER)
def handle_provider_delete(
    meta: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle Provider resource deletion."""
    _handler.delete(meta, patch)
