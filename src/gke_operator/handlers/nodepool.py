"""Handler for NodePool CRD."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import kopf

from ..builders.nodepool import MAP_FIELDS
from ..config import get_config
from ..constants import API_GROUP_VERSION, KIND_NODE_POOL, PLURAL_NODE_POOL
from ..services.gcp.nodepool import NodePoolExternal
from .managed import ManagedReconciler
from .shared import build_reconciler, run_reconcile


@lru_cache(maxsize=1)
def get_reconciler() -> ManagedReconciler:
    """Get the process-wide NodePool reconciler."""
    return build_reconciler(KIND_NODE_POOL, PLURAL_NODE_POOL, NodePoolExternal, MAP_FIELDS)


@kopf.on.create(API_GROUP_VERSION, KIND_NODE_POOL)
@kopf.on.update(API_GROUP_VERSION, KIND_NODE_POOL)
@kopf.on.resume(API_GROUP_VERSION, KIND_NODE_POOL)
@kopf.timer(API_GROUP_VERSION, KIND_NODE_POOL, interval=get_config().requeue_on_success_seconds)
def handle_node_pool(body: kopf.Body, **kwargs: Any) -> None:
    """Handle NodePool resource reconciliation."""
    run_reconcile(get_reconciler(), body)


@kopf.on.delete(API_GROUP_VERSION, KIND_NODE_POOL)
def handle_node_pool_delete(body: kopf.Body, **kwargs: Any) -> None:
    """Handle NodePool resource deletion."""
    run_reconcile(get_reconciler(), body)
