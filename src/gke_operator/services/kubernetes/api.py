"""Kubernetes API access shared by handlers and collaborators."""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from ... import metrics
from ...constants import API_GROUP, API_VERSION, KIND_PROVIDER, PLURAL_PROVIDER
from ...utils.cache import get_cached_object, make_cache_key, set_cached_object
from ...utils.rate_limit import call_with_rate_limit_retry, rate_limit_k8s

_T = TypeVar("_T")

_configured = False


def load_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    global _configured
    if _configured:
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    _configured = True


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client."""
    load_config()
    return client.CustomObjectsApi()


def get_core_client() -> client.CoreV1Api:
    """Get Kubernetes CoreV1Api client."""
    load_config()
    return client.CoreV1Api()


def call_k8s(operation: str, func: Callable[..., _T], **kwargs: Any) -> _T:
    """Call the Kubernetes API with rate limiting and metrics.

    Args:
        operation: Metric label for the call
        func: Bound API client method
        **kwargs: Arguments for the method

    Returns:
        Whatever the API method returns
    """
    start_time = time.time()
    try:
        result = call_with_rate_limit_retry("k8s", rate_limit_k8s(func), **kwargs)
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
        return result
    except ApiException:
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
        raise
    finally:
        metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(
            time.time() - start_time
        )


def get_provider_with_cache(
    api: Any,
    provider_name: str,
    provider_ns: str,
) -> dict[str, Any]:
    """Get Provider CRD with caching.

    Args:
        api: Kubernetes CustomObjectsApi instance
        provider_name: Name of the provider
        provider_ns: Namespace of the provider

    Returns:
        Provider CRD object

    Raises:
        ApiException: If provider not found or API error
    """
    cache_key = make_cache_key(KIND_PROVIDER, provider_ns, provider_name)
    cached_provider = get_cached_object(cache_key)

    if cached_provider is not None:
        metrics.api_call_total.labels(api_type="k8s", operation="get_provider", result="cache_hit").inc()
        return cached_provider

    provider_obj = call_k8s(
        "get_provider",
        api.get_namespaced_custom_object,
        group=API_GROUP,
        version=API_VERSION,
        namespace=provider_ns,
        plural=PLURAL_PROVIDER,
        name=provider_name,
    )
    set_cached_object(cache_key, provider_obj)
    return provider_obj
