"""Interfaces between the reconciler and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..resource import ManagedResource
from ..utils.context import CycleContext


@dataclass
class ExternalObservation:
    """Result of observing an external resource."""

    resource_exists: bool = False
    resource_up_to_date: bool = False
    resource_late_initialized: bool = False
    connection_details: dict[str, bytes] = field(default_factory=dict)


@dataclass
class ExternalCreation:
    """Result of creating an external resource."""

    connection_details: dict[str, bytes] = field(default_factory=dict)


@dataclass
class ExternalUpdate:
    """Result of updating an external resource."""

    update_kind: str | None = None
    connection_details: dict[str, bytes] = field(default_factory=dict)


class ExternalClient(Protocol):
    """Operations one resource kind supports against its provider.

    Implementations hold a provider client scoped to a single cycle.
    """

    def observe(self, resource: ManagedResource, ctx: CycleContext) -> ExternalObservation:
        """Fetch the external object and fold it into the resource status.

        Returns resource_exists=False instead of raising when it is absent.
        """
        ...

    def create(self, resource: ManagedResource, ctx: CycleContext) -> ExternalCreation:
        ...

    def update(self, resource: ManagedResource, ctx: CycleContext) -> ExternalUpdate:
        ...

    def delete(self, resource: ManagedResource, ctx: CycleContext) -> None:
        """Delete the external object. An already absent object is success."""
        ...


class ExternalConnector(Protocol):
    """Builds an ExternalClient for one resource."""

    def connect(self, resource: ManagedResource, ctx: CycleContext) -> ExternalClient:
        ...


class ResourceStore(Protocol):
    """Persists spec, status and finalizer changes of managed resources."""

    def update_spec(self, resource: ManagedResource) -> None:
        ...

    def update_status(self, resource: ManagedResource) -> None:
        ...

    def add_finalizer(self, resource: ManagedResource) -> None:
        ...

    def remove_finalizer(self, resource: ManagedResource) -> None:
        ...


class ConnectionPublisher(Protocol):
    """Writes connection details somewhere consumers can read them."""

    def publish(self, resource: ManagedResource, details: dict[str, Any]) -> bool:
        """Store the details. Returns True if the stored details changed."""
        ...
