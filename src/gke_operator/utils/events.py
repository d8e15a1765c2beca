"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CONNECTION_PUBLISHED,
    EVENT_REASON_CREATED,
    EVENT_REASON_DELETED,
    EVENT_REASON_LATE_INITIALIZED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_UPDATED,
    EVENT_REASON_VALIDATE_FAILED,
    EVENT_REASON_VALIDATE_SUCCEEDED,
)


def emit_event(
    obj: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        obj: Object body with apiVersion, kind and metadata
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        obj,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(obj: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(obj, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_succeeded(obj: dict[str, Any]) -> None:
    """Emit validation succeeded event."""
    emit_event(obj, EVENT_REASON_VALIDATE_SUCCEEDED, "Validation succeeded")


def emit_validate_failed(obj: dict[str, Any], message: str) -> None:
    """Emit validation failed event."""
    emit_event(obj, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_external_created(obj: dict[str, Any], external_name: str) -> None:
    emit_event(obj, EVENT_REASON_CREATED, f"Created external resource {external_name}")


def emit_external_updated(obj: dict[str, Any], external_name: str, update_kind: str) -> None:
    emit_event(obj, EVENT_REASON_UPDATED, f"Applied {update_kind} to external resource {external_name}")


def emit_external_deleted(obj: dict[str, Any], external_name: str) -> None:
    emit_event(obj, EVENT_REASON_DELETED, f"Deleted external resource {external_name}")


def emit_late_initialized(obj: dict[str, Any]) -> None:
    emit_event(obj, EVENT_REASON_LATE_INITIALIZED, "Filled unset parameters from the external resource")


def emit_connection_published(obj: dict[str, Any], secret_name: str) -> None:
    emit_event(obj, EVENT_REASON_CONNECTION_PUBLISHED, f"Connection details written to secret {secret_name}")
