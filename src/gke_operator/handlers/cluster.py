"""Handler for GKECluster CRD."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import kopf

from ..builders.cluster import MAP_FIELDS
from ..config import get_config
from ..constants import API_GROUP_VERSION, KIND_CLUSTER, PLURAL_CLUSTER
from ..services.gcp.cluster import ClusterExternal
from .managed import ManagedReconciler
from .shared import build_reconciler, run_reconcile


@lru_cache(maxsize=1)
def get_reconciler() -> ManagedReconciler:
    """Get the process-wide GKECluster reconciler."""
    return build_reconciler(KIND_CLUSTER, PLURAL_CLUSTER, ClusterExternal, MAP_FIELDS)


@kopf.on.create(API_GROUP_VERSION, KIND_CLUSTER)
@kopf.on.update(API_GROUP_VERSION, KIND_CLUSTER)
@kopf.on.resume(API_GROUP_VERSION, KIND_CLUSTER)
@kopf.timer(API_GROUP_VERSION, KIND_CLUSTER, interval=get_config().requeue_on_success_seconds)
def handle_cluster(body: kopf.Body, **kwargs: Any) -> None:
    """Handle GKECluster resource reconciliation."""
    run_reconcile(get_reconciler(), body)


@kopf.on.delete(API_GROUP_VERSION, KIND_CLUSTER)
def handle_cluster_delete(body: kopf.Body, **kwargs: Any) -> None:
    """Handle GKECluster resource deletion."""
    run_reconcile(get_reconciler(), body)
