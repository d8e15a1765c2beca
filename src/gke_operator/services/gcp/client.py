"""Kubernetes Engine API client."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from ... import metrics
from ...constants import CLOUD_PLATFORM_SCOPE, CONTAINER_API_NAME, CONTAINER_API_VERSION
from ...exceptions import (
    DeadlineExceededError,
    NotFoundError,
    ProviderAPIError,
    ProviderConnectionError,
)
from ...utils.context import CycleContext
from ...utils.rate_limit import call_with_rate_limit_retry, error_status, rate_limit_gcp

logger = logging.getLogger(__name__)

# Lower bound for the socket timeout of a nearly expired cycle
MIN_TRANSPORT_TIMEOUT_SECONDS = 1.0


def new_container_service(credentials_info: dict[str, Any], timeout: float) -> Any:
    """Build a container API service from a service account key.

    Each call returns a service with its own HTTP transport, since
    httplib2 connections must not be shared between threads.

    Args:
        credentials_info: Parsed service account JSON key
        timeout: Socket timeout in seconds

    Returns:
        Discovery resource for the container API

    Raises:
        ValueError: If the key is malformed
    """
    credentials = service_account.Credentials.from_service_account_info(
        credentials_info, scopes=[CLOUD_PLATFORM_SCOPE]
    )
    http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=max(timeout, MIN_TRANSPORT_TIMEOUT_SECONDS)))
    return discovery.build(
        CONTAINER_API_NAME,
        CONTAINER_API_VERSION,
        http=http,
        cache_discovery=False,
        static_discovery=True,
    )


def bound_transport_timeout(request: Any, timeout: float) -> None:
    """Cap the socket timeout of a request's httplib2 transport.

    Open connections are capped as well as the transport default.
    """
    authorized = getattr(request, "http", None)
    transport = getattr(authorized, "http", None)
    if not isinstance(transport, httplib2.Http):
        return
    timeout = max(timeout, MIN_TRANSPORT_TIMEOUT_SECONDS)
    transport.timeout = timeout
    for conn in transport.connections.values():
        conn.timeout = timeout
        if conn.sock is not None:
            conn.sock.settimeout(timeout)


def _http_error_message(err: HttpError) -> str:
    reason = getattr(err, "reason", None)
    return reason or str(err)


class ContainerClient:
    """Thin wrapper over the container API for clusters and node pools.

    Every attempt checks the cycle deadline and is capped to the time left
    in it. Calls are rate limited and their errors are translated into the
    operator's error types.
    """

    def __init__(self, service: Any, project_id: str, ctx: CycleContext | None = None):
        self.service = service
        self.project_id = project_id
        self.ctx = ctx

    def _clusters(self) -> Any:
        return self.service.projects().locations().clusters()

    def _node_pools(self) -> Any:
        return self._clusters().nodePools()

    def _send(self, request_fn: Callable[[], Any]) -> Any:
        request = request_fn()
        if self.ctx is not None:
            bound_transport_timeout(request, self.ctx.remaining())
        return request.execute()

    def _execute(self, operation: str, request_fn: Callable[[], Any]) -> dict[str, Any]:
        start_time = time.time()
        result = "error"
        try:
            response = call_with_rate_limit_retry(
                "gcp",
                rate_limit_gcp(lambda: self._send(request_fn)),
                cycle=self.ctx,
                operation=operation,
            )
            result = "success"
            return response or {}
        except HttpError as e:
            status = error_status(e)
            if status == 404:
                result = "not_found"
                raise NotFoundError(_http_error_message(e), operation=operation, cause=e) from e
            raise ProviderAPIError(_http_error_message(e), operation=operation, cause=e, status=status) from e
        except TimeoutError as e:
            raise DeadlineExceededError(f"request timed out: {e}", operation=operation, cause=e) from e
        except RefreshError as e:
            raise ProviderConnectionError(f"cannot refresh credentials: {e}", operation=operation, cause=e) from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise ProviderAPIError(f"transport error: {e}", operation=operation, cause=e) from e
        finally:
            metrics.api_call_total.labels(api_type="gcp", operation=operation, result=result).inc()
            metrics.api_call_duration_seconds.labels(api_type="gcp", operation=operation).observe(
                time.time() - start_time
            )

    # Node pools

    def get_node_pool(self, name: str) -> dict[str, Any]:
        return self._execute("get_node_pool", lambda: self._node_pools().get(name=name))

    def create_node_pool(self, parent: str, pool: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "create_node_pool",
            lambda: self._node_pools().create(parent=parent, body={"nodePool": pool}),
        )

    def update_node_pool(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute("update_node_pool", lambda: self._node_pools().update(name=name, body=body))

    def set_node_pool_autoscaling(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "set_node_pool_autoscaling",
            lambda: self._node_pools().setAutoscaling(name=name, body=body),
        )

    def set_node_pool_management(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "set_node_pool_management",
            lambda: self._node_pools().setManagement(name=name, body=body),
        )

    def delete_node_pool(self, name: str) -> dict[str, Any]:
        return self._execute("delete_node_pool", lambda: self._node_pools().delete(name=name))

    # Clusters

    def get_cluster(self, name: str) -> dict[str, Any]:
        return self._execute("get_cluster", lambda: self._clusters().get(name=name))

    def create_cluster(self, parent: str, cluster: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "create_cluster",
            lambda: self._clusters().create(parent=parent, body={"cluster": cluster}),
        )

    def update_cluster(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute("update_cluster", lambda: self._clusters().update(name=name, body=body))

    def set_cluster_labels(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "set_cluster_labels",
            lambda: self._clusters().setResourceLabels(name=name, body=body),
        )

    def set_cluster_legacy_abac(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "set_cluster_legacy_abac",
            lambda: self._clusters().setLegacyAbac(name=name, body=body),
        )

    def set_cluster_network_policy(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._execute(
            "set_cluster_network_policy",
            lambda: self._clusters().setNetworkPolicy(name=name, body=body),
        )

    def delete_cluster(self, name: str) -> dict[str, Any]:
        return self._execute("delete_cluster", lambda: self._clusters().delete(name=name))


def build_container_client(
    credentials_info: dict[str, Any],
    project_id: str,
    ctx: CycleContext,
    service_factory: Callable[[dict[str, Any], float], Any] = new_container_service,
) -> ContainerClient:
    """Build a ContainerClient scoped to one cycle.

    Raises:
        ProviderConnectionError: If the credentials cannot be used
    """
    try:
        service = service_factory(credentials_info, ctx.remaining())
    except (ValueError, KeyError, GoogleAuthError) as e:
        raise ProviderConnectionError(f"invalid service account key: {e}", cause=e) from e
    return ContainerClient(service, project_id, ctx)
