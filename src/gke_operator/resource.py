"""In-memory view of a managed custom resource."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    ANNOTATION_EXTERNAL_NAME,
    API_GROUP_VERSION,
    DELETION_POLICY_DELETE,
)


@dataclass
class ManagedResource:
    """A managed resource snapshot taken from a kopf handler body.

    The spec and status are deep copies, so the reconciler can mutate them
    freely and persist the result through the resource store.
    """

    kind: str
    name: str
    namespace: str
    uid: str = ""
    generation: int = 0
    resource_version: str | None = None
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    api_version: str = API_GROUP_VERSION

    @classmethod
    def from_body(cls, body: Any) -> ManagedResource:
        """Build a snapshot from a Kubernetes object body.

        Args:
            body: Object as returned by the API server or passed by kopf

        Returns:
            ManagedResource instance
        """
        meta = body.get("metadata", {}) or {}
        return cls(
            kind=body.get("kind", ""),
            name=meta.get("name", ""),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", ""),
            generation=meta.get("generation", 0) or 0,
            resource_version=meta.get("resourceVersion"),
            annotations=dict(meta.get("annotations") or {}),
            finalizers=list(meta.get("finalizers") or []),
            deletion_timestamp=meta.get("deletionTimestamp"),
            spec=copy.deepcopy(dict(body.get("spec") or {})),
            status=copy.deepcopy(dict(body.get("status") or {})),
            api_version=body.get("apiVersion", API_GROUP_VERSION),
        )

    @property
    def key(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"

    @property
    def external_name(self) -> str:
        return self.annotations.get(ANNOTATION_EXTERNAL_NAME) or self.name

    @property
    def for_provider(self) -> dict[str, Any]:
        return self.spec.setdefault("forProvider", {})

    @for_provider.setter
    def for_provider(self, value: dict[str, Any]) -> None:
        self.spec["forProvider"] = value

    @property
    def provider_ref(self) -> dict[str, Any]:
        return self.spec.get("providerRef") or {}

    @property
    def deletion_policy(self) -> str:
        return self.spec.get("deletionPolicy") or DELETION_POLICY_DELETE

    @property
    def write_connection_secret_to_ref(self) -> dict[str, Any] | None:
        ref = self.spec.get("writeConnectionSecretToRef")
        if not ref or not ref.get("name"):
            return None
        return ref

    @property
    def being_deleted(self) -> bool:
        return self.deletion_timestamp is not None

    @property
    def conditions(self) -> list[dict[str, Any]]:
        return self.status.setdefault("conditions", [])

    @property
    def meta(self) -> dict[str, Any]:
        """Metadata in the shape the structured logger expects."""
        return {
            "name": self.name,
            "namespace": self.namespace,
            "uid": self.uid,
            "generation": self.generation,
            "finalizers": list(self.finalizers),
        }

    def object_reference(self) -> dict[str, Any]:
        """Object body used when posting Kubernetes events."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "uid": self.uid,
            },
        }

    def owner_reference(self) -> dict[str, Any]:
        """Owner reference for objects created on behalf of this resource."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }
