"""External client for GKECluster resources."""

from __future__ import annotations

import copy
import logging

from ...builders import cluster as builder
from ...builders.cluster import ClusterUpdateKind
from ...constants import ERR_NOT_CLUSTER, KIND_CLUSTER
from ...exceptions import NotFoundError, TypeMismatchError
from ...resource import ManagedResource
from ...utils.conditions import set_conditions_for_state
from ...utils.context import CycleContext
from ..base import ExternalCreation, ExternalObservation, ExternalUpdate
from .client import ContainerClient

logger = logging.getLogger(__name__)


class ClusterExternal:
    """Create, observe, update and delete GKE clusters.

    Unlike node pools, update re-reads the cluster: setResourceLabels must
    carry the current label fingerprint.
    """

    kind = KIND_CLUSTER

    def __init__(self, client: ContainerClient):
        self.client = client

    def _check_kind(self, resource: ManagedResource) -> None:
        if resource.kind != KIND_CLUSTER:
            raise TypeMismatchError(ERR_NOT_CLUSTER)

    def _name(self, resource: ManagedResource) -> str:
        return builder.get_fully_qualified_name(
            self.client.project_id, resource.for_provider, resource.external_name
        )

    def observe(self, resource: ManagedResource, ctx: CycleContext) -> ExternalObservation:
        self._check_kind(resource)
        try:
            existing = self.client.get_cluster(self._name(resource))
        except NotFoundError:
            return ExternalObservation(resource_exists=False)

        resource.status["atProvider"] = builder.generate_observation(existing)

        before = copy.deepcopy(resource.for_provider)
        builder.late_initialize_spec(resource.for_provider, existing)
        late_initialized = resource.for_provider != before

        set_conditions_for_state(resource.status, existing.get("status"), existing.get("statusMessage", ""))

        up_to_date, _ = builder.is_up_to_date(resource.for_provider, existing)
        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=up_to_date,
            resource_late_initialized=late_initialized,
            connection_details=builder.connection_details(existing),
        )

    def create(self, resource: ManagedResource, ctx: CycleContext) -> ExternalCreation:
        self._check_kind(resource)
        name = resource.external_name.rsplit("/", 1)[-1]
        cluster = builder.generate_cluster(resource.for_provider, name)
        self.client.create_cluster(builder.get_parent(self.client.project_id, resource.for_provider), cluster)
        return ExternalCreation()

    def update(self, resource: ManagedResource, ctx: CycleContext) -> ExternalUpdate:
        self._check_kind(resource)
        name = self._name(resource)
        existing = self.client.get_cluster(name)

        up_to_date, kind = builder.is_up_to_date(resource.for_provider, existing)
        if up_to_date:
            return ExternalUpdate(update_kind=ClusterUpdateKind.NO_UPDATE.value)

        params = resource.for_provider
        if kind is ClusterUpdateKind.LABELS:
            self.client.set_cluster_labels(name, builder.generate_labels_update(params, existing))
        elif kind is ClusterUpdateKind.LEGACY_ABAC:
            self.client.set_cluster_legacy_abac(name, builder.generate_legacy_abac_update(params))
        elif kind is ClusterUpdateKind.NETWORK_POLICY:
            self.client.set_cluster_network_policy(name, builder.generate_network_policy_update(params))
        else:
            body = builder.generate_cluster_update(params, existing)
            if body is None:
                logger.warning(
                    f"cluster {name} differs only in immutable fields "
                    f"{builder.changed_fields(params, existing)}; recreate it to apply them"
                )
                return ExternalUpdate(update_kind=ClusterUpdateKind.NO_UPDATE.value)
            self.client.update_cluster(name, body)
        return ExternalUpdate(update_kind=kind.value)

    def delete(self, resource: ManagedResource, ctx: CycleContext) -> None:
        self._check_kind(resource)
        try:
            self.client.delete_cluster(self._name(resource))
        except NotFoundError:
            logger.debug(f"cluster {self._name(resource)} already absent")
