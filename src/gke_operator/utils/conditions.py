"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    BINDING_PHASE_BOUND,
    BINDING_PHASE_UNBOUND,
    COND_CREDENTIALS_VALID,
    COND_READY,
    COND_SYNCED,
    REASON_AVAILABLE,
    REASON_CREATING,
    REASON_DELETING,
    REASON_RECONCILE_ERROR,
    REASON_RECONCILE_SUCCESS,
    REASON_UNAVAILABLE,
    STATE_PROVISIONING,
    STATE_RUNNING,
)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    At most one condition per type is kept. The transition time only moves
    when the status changes.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()

    existing_idx = None
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            existing_idx = idx
            break

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }

    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    if existing_idx is not None:
        existing = conditions[existing_idx]
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        conditions[existing_idx] = new_condition
        # drop duplicates left behind by older writers
        conditions[:] = [
            c for i, c in enumerate(conditions) if i == existing_idx or c.get("type") != condition_type
        ]
    else:
        conditions.append(new_condition)

    return conditions


def get_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, if present."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None


def is_condition_true(conditions: list[dict[str, Any]], condition_type: str, reason: str | None = None) -> bool:
    """Check whether a condition is True, optionally with a specific reason."""
    cond = get_condition(conditions, condition_type)
    if cond is None or cond.get("status") != "True":
        return False
    return reason is None or cond.get("reason") == reason


def set_available(conditions: list[dict[str, Any]], observed_generation: int | None = None) -> list[dict[str, Any]]:
    """Mark the external resource as available for use."""
    return update_condition(conditions, COND_READY, "True", REASON_AVAILABLE, "", observed_generation)


def set_unavailable(
    conditions: list[dict[str, Any]],
    message: str = "",
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Mark the external resource as existing but unusable."""
    return update_condition(conditions, COND_READY, "False", REASON_UNAVAILABLE, message, observed_generation)


def set_creating(conditions: list[dict[str, Any]], observed_generation: int | None = None) -> list[dict[str, Any]]:
    """Mark the external resource as being created."""
    return update_condition(conditions, COND_READY, "False", REASON_CREATING, "", observed_generation)


def set_deleting(conditions: list[dict[str, Any]], observed_generation: int | None = None) -> list[dict[str, Any]]:
    """Mark the external resource as being deleted."""
    return update_condition(conditions, COND_READY, "False", REASON_DELETING, "", observed_generation)


def set_reconcile_success(
    conditions: list[dict[str, Any]],
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Record that the last reconciliation completed without error."""
    return update_condition(conditions, COND_SYNCED, "True", REASON_RECONCILE_SUCCESS, "", observed_generation)


def set_reconcile_error(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Record the failure of the last reconciliation."""
    return update_condition(conditions, COND_SYNCED, "False", REASON_RECONCILE_ERROR, message, observed_generation)


def set_ready_condition(
    conditions: list[dict[str, Any]],
    status: bool,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the Ready condition."""
    return update_condition(
        conditions,
        COND_READY,
        "True" if status else "False",
        "Ready" if status else "NotReady",
        message,
        observed_generation,
    )


def set_credentials_valid_condition(
    conditions: list[dict[str, Any]],
    status: bool,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the CredentialsValid condition."""
    return update_condition(
        conditions,
        COND_CREDENTIALS_VALID,
        "True" if status else "False",
        "CredentialsValid" if status else "CredentialsInvalid",
        message,
        observed_generation,
    )


def set_bindable(status: dict[str, Any]) -> None:
    """Mark a resource as ready to be bound, unless it already is."""
    if status.get("bindingPhase") != BINDING_PHASE_BOUND:
        status["bindingPhase"] = BINDING_PHASE_UNBOUND


def set_conditions_for_state(status: dict[str, Any], state: str | None, message: str = "") -> None:
    """Translate an external lifecycle state into local conditions.

    Args:
        status: Resource status, modified in place
        state: State string reported by the provider
        message: Provider status message, attached to Unavailable
    """
    conditions = status.setdefault("conditions", [])
    if state == STATE_RUNNING:
        set_available(conditions)
        set_bindable(status)
    elif state == STATE_PROVISIONING:
        set_creating(conditions)
    else:
        set_unavailable(conditions, message or f"external resource is in state {state or 'unknown'}")
