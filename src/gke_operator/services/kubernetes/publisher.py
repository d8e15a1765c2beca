"""Connection details sink backed by Kubernetes secrets."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes.client.exceptions import ApiException

from ...constants import ERR_PUBLISH
from ...exceptions import ReconcileError
from ...resource import ManagedResource
from ...utils.rate_limit import call_with_rate_limit_retry
from ...utils.secrets import SECRET_UNCHANGED, upsert_secret

logger = logging.getLogger(__name__)


class SecretConnectionPublisher:
    """Writes connection details to the secret named by writeConnectionSecretToRef."""

    def __init__(self, core_api: Any):
        self.core_api = core_api

    def publish(self, resource: ManagedResource, details: dict[str, Any]) -> bool:
        """Write details to the referenced secret.

        Returns:
            True if the secret was created or its data changed
        """
        ref = resource.write_connection_secret_to_ref
        if ref is None or not details:
            return False

        namespace = ref.get("namespace") or resource.namespace
        # owner references cannot cross namespaces
        owners = [resource.owner_reference()] if namespace == resource.namespace else None
        try:
            outcome = call_with_rate_limit_retry(
                "k8s", upsert_secret, self.core_api, namespace, ref["name"], details, owners
            )
        except ApiException as e:
            raise ReconcileError(str(e.reason or e), operation=ERR_PUBLISH, cause=e) from e
        logger.debug(f"connection secret {namespace}/{ref['name']} {outcome}")
        return outcome != SECRET_UNCHANGED
