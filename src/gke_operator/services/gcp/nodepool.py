"""External client for NodePool resources."""

from __future__ import annotations

import copy
import logging
from typing import Any

from ...builders import nodepool as builder
from ...builders.nodepool import NodePoolUpdateKind
from ...constants import ERR_NOT_NODE_POOL, KIND_NODE_POOL
from ...exceptions import NotFoundError, TypeMismatchError
from ...resource import ManagedResource
from ...utils.conditions import set_conditions_for_state
from ...utils.context import CycleContext
from ..base import ExternalCreation, ExternalObservation, ExternalUpdate
from .client import ContainerClient

logger = logging.getLogger(__name__)


class NodePoolExternal:
    """Create, observe, update and delete GKE node pools.

    The node pool fetched by observe is kept and reused by update, so a
    cycle issues a single Get.
    """

    kind = KIND_NODE_POOL

    def __init__(self, client: ContainerClient):
        self.client = client
        self._observed: dict[str, Any] | None = None

    def _check_kind(self, resource: ManagedResource) -> None:
        if resource.kind != KIND_NODE_POOL:
            raise TypeMismatchError(ERR_NOT_NODE_POOL)

    def _name(self, resource: ManagedResource) -> str:
        return builder.get_fully_qualified_name(resource.for_provider, resource.external_name)

    def observe(self, resource: ManagedResource, ctx: CycleContext) -> ExternalObservation:
        self._check_kind(resource)
        try:
            existing = self.client.get_node_pool(self._name(resource))
        except NotFoundError:
            self._observed = None
            return ExternalObservation(resource_exists=False)

        self._observed = existing
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
        )

    def create(self, resource: ManagedResource, ctx: CycleContext) -> ExternalCreation:
        self._check_kind(resource)
        pool = builder.generate_node_pool(resource.for_provider, resource.external_name)
        self.client.create_node_pool(resource.for_provider.get("cluster", ""), pool)
        return ExternalCreation()

    def update(self, resource: ManagedResource, ctx: CycleContext) -> ExternalUpdate:
        self._check_kind(resource)
        name = self._name(resource)
        existing = self._observed if self._observed is not None else self.client.get_node_pool(name)

        up_to_date, kind = builder.is_up_to_date(resource.for_provider, existing)
        if up_to_date:
            return ExternalUpdate(update_kind=NodePoolUpdateKind.NO_UPDATE.value)

        params = resource.for_provider
        if kind is NodePoolUpdateKind.AUTOSCALING:
            self.client.set_node_pool_autoscaling(name, builder.generate_partial_update(params, kind))
        elif kind is NodePoolUpdateKind.MANAGEMENT:
            self.client.set_node_pool_management(name, builder.generate_partial_update(params, kind))
        else:
            body = builder.generate_general_update(params, existing)
            if body is None:
                logger.warning(
                    f"node pool {name} differs only in immutable fields "
                    f"{builder.changed_fields(params, existing)}; recreate it to apply them"
                )
                return ExternalUpdate(update_kind=NodePoolUpdateKind.NO_UPDATE.value)
            self.client.update_node_pool(name, body)
        return ExternalUpdate(update_kind=kind.value)

    def delete(self, resource: ManagedResource, ctx: CycleContext) -> None:
        self._check_kind(resource)
        try:
            self.client.delete_node_pool(self._name(resource))
        except NotFoundError:
            logger.debug(f"node pool {self._name(resource)} already absent")
