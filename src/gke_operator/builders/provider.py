"""Builder for container API clients from Provider resources."""

from __future__ import annotations

import json
from typing import Any, Callable

from kubernetes.client.exceptions import ApiException

from ..constants import ERR_CONNECT, ERR_GET_PROVIDER, ERR_GET_PROVIDER_SECRET, ERR_NEW_CLIENT
from ..exceptions import ProviderConnectionError
from ..resource import ManagedResource
from ..services.base import ExternalClient
from ..services.gcp.client import ContainerClient, build_container_client, new_container_service
from ..services.kubernetes.api import get_provider_with_cache
from ..utils.context import CycleContext
from ..utils.secrets import get_secret_value

DEFAULT_CREDENTIALS_KEY = "credentials.json"


def validate_provider_spec(spec: dict[str, Any]) -> None:
    """Validate a Provider spec.

    Raises:
        ValueError: If projectID or the credentials secret reference is missing
    """
    if not spec.get("projectID"):
        raise ValueError("projectID is required")
    secret_ref = spec.get("credentialsSecretRef") or {}
    if not secret_ref.get("name"):
        raise ValueError("credentialsSecretRef.name is required")


def parse_credentials(raw: str) -> dict[str, Any]:
    """Parse a service account JSON key.

    Raises:
        ValueError: If the key is not a service account key
    """
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"credentials are not valid JSON: {e.msg}") from e
    if not isinstance(info, dict) or info.get("type") != "service_account":
        raise ValueError("credentials are not a service account key")
    for field in ("client_email", "private_key"):
        if not info.get(field):
            raise ValueError(f"service account key has no {field}")
    return info


def read_provider_credentials(core_api: Any, spec: dict[str, Any], namespace: str) -> dict[str, Any]:
    """Read and parse the credentials a Provider points at.

    Args:
        core_api: Kubernetes CoreV1Api instance
        spec: Provider spec
        namespace: Namespace used when the secret reference has none

    Returns:
        Parsed service account key
    """
    secret_ref = spec.get("credentialsSecretRef") or {}
    raw = get_secret_value(
        core_api,
        secret_ref.get("namespace") or namespace,
        secret_ref["name"],
        secret_ref.get("key") or DEFAULT_CREDENTIALS_KEY,
    )
    return parse_credentials(raw)


class ProviderConnector:
    """Resolves a managed resource's Provider into an ExternalClient.

    Args:
        external_factory: Builds the kind-specific client around a ContainerClient
        custom_api: Kubernetes CustomObjectsApi, used to read the Provider
        core_api: Kubernetes CoreV1Api, used to read the credentials secret
        service_factory: Builds a container API service from key and timeout
    """

    def __init__(
        self,
        external_factory: Callable[[ContainerClient], ExternalClient],
        custom_api: Any,
        core_api: Any,
        service_factory: Callable[[dict[str, Any], float], Any] = new_container_service,
    ):
        self.external_factory = external_factory
        self.custom_api = custom_api
        self.core_api = core_api
        self.service_factory = service_factory

    def connect(self, resource: ManagedResource, ctx: CycleContext) -> ExternalClient:
        """Build a client for one reconciliation cycle.

        Raises:
            ProviderConnectionError: If the Provider, its secret or the
                client cannot be resolved
        """
        ctx.check(ERR_CONNECT)
        ref = resource.provider_ref
        provider_name = ref.get("name")
        provider_ns = ref.get("namespace") or resource.namespace
        if not provider_name:
            raise ProviderConnectionError("providerRef.name is required", operation=ERR_GET_PROVIDER)

        try:
            provider = get_provider_with_cache(self.custom_api, provider_name, provider_ns)
        except ApiException as e:
            raise ProviderConnectionError(
                f"Provider {provider_ns}/{provider_name}: {e.reason or e}", operation=ERR_GET_PROVIDER, cause=e
            ) from e

        spec = provider.get("spec") or {}
        try:
            validate_provider_spec(spec)
            credentials = read_provider_credentials(self.core_api, spec, provider_ns)
        except (ValueError, ApiException) as e:
            raise ProviderConnectionError(str(e), operation=ERR_GET_PROVIDER_SECRET, cause=e) from e

        try:
            client = build_container_client(credentials, spec["projectID"], ctx, self.service_factory)
        except ProviderConnectionError as e:
            e.operation = ERR_NEW_CLIENT
            raise
        return self.external_factory(client)
