"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from gke_operator.constants import API_GROUP_VERSION, KIND_NODE_POOL
from gke_operator.utils import cache


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """kopf.event needs a running operator, so events are captured instead."""
    with patch("gke_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture(autouse=True)
def clear_cache():
    """Keep the Provider cache from leaking between tests."""
    cache.invalidate_cache()
    yield
    cache.invalidate_cache()


def _make_body(
    kind: str = KIND_NODE_POOL,
    name: str = "pool-a",
    namespace: str = "default",
    for_provider: dict[str, Any] | None = None,
    status: dict[str, Any] | None = None,
    **spec: Any,
) -> dict[str, Any]:
    """Build a managed resource body the way kopf hands it to handlers."""
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "generation": 2,
            "resourceVersion": "100",
        },
        "spec": {
            "forProvider": for_provider if for_provider is not None else {},
            "providerRef": {"name": "gcp"},
            **spec,
        },
        "status": status or {},
    }


@pytest.fixture
def make_body():
    """Factory for managed resource bodies."""
    return _make_body

