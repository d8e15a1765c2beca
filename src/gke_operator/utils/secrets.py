"""Utilities for managing Kubernetes secrets."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from kubernetes import client

from ..constants import FIELD_MANAGER, LABEL_MANAGED_BY

SECRET_CREATED = "created"
SECRET_UPDATED = "updated"
SECRET_UNCHANGED = "unchanged"


def _decode(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        # some client versions hand back already-decoded data
        return value


def get_secret_value(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    key: str,
) -> str:
    """Get a value from a Kubernetes secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret
        key: Key in the secret

    Returns:
        Secret value

    Raises:
        ValueError: If secret or key not found
    """
    try:
        secret = api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status == 404:
            raise ValueError(f"Secret '{secret_name}' not found in namespace '{namespace}'") from e
        raise

    data = secret.data or {}
    if key not in data:
        raise ValueError(f"Key '{key}' not found in secret '{secret_name}'")
    return _decode(data[key])


def _encode(data: dict[str, str | bytes]) -> dict[str, str]:
    encoded = {}
    for key, value in data.items():
        raw = value if isinstance(value, bytes) else value.encode("utf-8")
        encoded[key] = base64.b64encode(raw).decode("utf-8")
    return encoded


def create_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    data: dict[str, str | bytes],
    owner_references: list[dict[str, Any]] | None = None,
) -> None:
    """Create an Opaque secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace for the secret
        secret_name: Name of the secret
        data: Secret data (will be base64 encoded)
        owner_references: Owner references for the secret
    """
    secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=secret_name,
            namespace=namespace,
            owner_references=owner_references or [],
            labels={LABEL_MANAGED_BY: FIELD_MANAGER},
        ),
        type="Opaque",
        data=_encode(data),
    )

    api.create_namespaced_secret(
        namespace=namespace,
        body=secret,
        field_manager=FIELD_MANAGER,
    )


def update_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    data: dict[str, str | bytes],
) -> None:
    """Patch the data of an existing secret."""
    api.patch_namespaced_secret(
        name=secret_name,
        namespace=namespace,
        body={"data": _encode(data)},
        field_manager=FIELD_MANAGER,
    )


def upsert_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    data: dict[str, str | bytes],
    owner_references: list[dict[str, Any]] | None = None,
) -> str:
    """Create a secret, or patch it when its data differs.

    Keys present in the secret but not in ``data`` are left alone and do
    not count as a difference.

    Returns:
        SECRET_CREATED, SECRET_UPDATED or SECRET_UNCHANGED
    """
    try:
        existing = api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status != 404:
            raise
        create_secret(api, namespace, secret_name, data, owner_references)
        return SECRET_CREATED

    current = existing.data or {}
    encoded = _encode(data)
    if all(current.get(key) == value for key, value in encoded.items()):
        return SECRET_UNCHANGED
    update_secret(api, namespace, secret_name, data)
    return SECRET_UPDATED
