"""Builder for node pool payloads.

Translates between NodePool ``forProvider`` parameters and the container
API's NodePool representation. All functions are pure.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any

from ..utils.drift import classify_drift, diff_fields
from ..utils.late_init import late_initialize_object, prune_zero

NODE_POOL_NAME_FORMAT = "{cluster}/nodePools/{name}"

# Free-form string maps, replaced wholesale during late-initialization
MAP_FIELDS = frozenset({"labels", "metadata"})

# Identity of the parent cluster, never part of drift detection
IDENTITY_FIELDS = ("cluster",)

AUTOSCALING_FIELDS = ("autoprovisioned", "enabled", "maxNodeCount", "minNodeCount")
MANAGEMENT_FIELDS = ("autoRepair", "autoUpgrade")
CONFIG_SCALAR_FIELDS = (
    "diskSizeGb",
    "diskType",
    "imageType",
    "localSsdCount",
    "machineType",
    "minCpuPlatform",
    "preemptible",
    "serviceAccount",
)
CONFIG_COLLECTION_FIELDS = ("labels", "metadata", "oauthScopes", "tags")


class NodePoolUpdateKind(str, Enum):
    """The single kind of partial update applied in one cycle."""

    NO_UPDATE = "NoUpdate"
    AUTOSCALING = "AutoscalingUpdate"
    MANAGEMENT = "ManagementUpdate"
    GENERAL = "GeneralUpdate"


def _pick(source: dict[str, Any] | None, fields: tuple[str, ...]) -> dict[str, Any] | None:
    if not source:
        return None
    return prune_zero({f: source.get(f) for f in fields})


def _as_int(value: Any) -> int | None:
    # int64 fields come back from the REST API as strings
    if value is None or value == "":
        return None
    return int(value)


def generate_node_pool(params: dict[str, Any], name: str) -> dict[str, Any]:
    """Build the NodePool body for a create call.

    Optional sub-structures are only emitted when the desired one is
    non-empty, so an empty spec never produces empty provider objects.

    Args:
        params: NodePool forProvider parameters
        name: External name of the node pool

    Returns:
        NodePool resource body
    """
    pool: dict[str, Any] = {"name": name}
    for field in ("initialNodeCount", "locations", "version"):
        if params.get(field) not in (None, [], ""):
            pool[field] = copy.deepcopy(params[field])

    generate_autoscaling(params.get("autoscaling"), pool)
    generate_config(params.get("config"), pool)
    generate_management(params.get("management"), pool)
    generate_max_pods_constraint(params.get("maxPodsConstraint"), pool)
    return pool


def generate_autoscaling(autoscaling: dict[str, Any] | None, pool: dict[str, Any]) -> None:
    out = _pick(autoscaling, AUTOSCALING_FIELDS)
    if out:
        pool["autoscaling"] = out


def generate_config(config: dict[str, Any] | None, pool: dict[str, Any]) -> None:
    """Populate ``pool["config"]`` from the desired node configuration."""
    if not config:
        return
    out: dict[str, Any] = {}
    for field in CONFIG_SCALAR_FIELDS + CONFIG_COLLECTION_FIELDS:
        if config.get(field) not in (None, [], {}, ""):
            out[field] = copy.deepcopy(config[field])

    accelerators = [
        {"acceleratorCount": a.get("acceleratorCount"), "acceleratorType": a.get("acceleratorType")}
        for a in config.get("accelerators") or []
        if a
    ]
    accelerators = prune_zero(accelerators)
    if accelerators:
        out["accelerators"] = accelerators

    taints = [
        {"key": t.get("key"), "value": t.get("value"), "effect": t.get("effect")}
        for t in config.get("taints") or []
        if t
    ]
    taints = prune_zero(taints)
    if taints:
        out["taints"] = taints

    sandbox = _pick(config.get("sandboxConfig"), ("sandboxType",))
    if sandbox:
        out["sandboxConfig"] = sandbox

    shielded = _pick(config.get("shieldedInstanceConfig"), ("enableIntegrityMonitoring", "enableSecureBoot"))
    if shielded:
        out["shieldedInstanceConfig"] = shielded

    workload = _pick(config.get("workloadMetadataConfig"), ("nodeMetadata",))
    if workload:
        out["workloadMetadataConfig"] = workload

    if out:
        pool["config"] = out


def generate_management(management: dict[str, Any] | None, pool: dict[str, Any]) -> None:
    out = _pick(management, MANAGEMENT_FIELDS)
    if out:
        pool["management"] = out


def generate_max_pods_constraint(constraint: dict[str, Any] | None, pool: dict[str, Any]) -> None:
    if constraint and _as_int(constraint.get("maxPodsPerNode")):
        pool["maxPodsConstraint"] = {"maxPodsPerNode": _as_int(constraint["maxPodsPerNode"])}


def generate_observation(pool: dict[str, Any]) -> dict[str, Any]:
    """Project a NodePool into the ``status.atProvider`` shape.

    Args:
        pool: NodePool as returned by the container API

    Returns:
        Observation dict
    """
    observation: dict[str, Any] = {
        "instanceGroupUrls": list(pool.get("instanceGroupUrls") or []),
        "podIpv4CidrSize": pool.get("podIpv4CidrSize"),
        "selfLink": pool.get("selfLink"),
        "status": pool.get("status"),
        "statusMessage": pool.get("statusMessage"),
        "conditions": [
            {"code": c.get("code"), "message": c.get("message")}
            for c in pool.get("conditions") or []
            if c
        ],
    }

    upgrade_options = (pool.get("management") or {}).get("upgradeOptions")
    if upgrade_options:
        observation["management"] = {
            "upgradeOptions": {
                "autoUpgradeStartTime": upgrade_options.get("autoUpgradeStartTime"),
                "description": upgrade_options.get("description"),
            }
        }

    return {k: v for k, v in observation.items() if v not in (None, [])}


def generate_node_pool_update(params: dict[str, Any]) -> dict[str, Any]:
    """Build the UpdateNodePoolRequest body for a general update."""
    request: dict[str, Any] = {
        "locations": list(params.get("locations") or []),
        "nodeVersion": params.get("version"),
    }
    config = params.get("config") or {}
    request["imageType"] = config.get("imageType")
    workload = _pick(config.get("workloadMetadataConfig"), ("nodeMetadata",))
    if workload:
        request["workloadMetadataConfig"] = workload
    return {k: v for k, v in request.items() if v not in (None, [])}


def generate_general_update(params: dict[str, Any], pool: dict[str, Any]) -> dict[str, Any] | None:
    """Build the general update body, or None when it would not change the pool.

    Only locations, version, image type and workload metadata can be changed
    in place. Drift confined to other fields needs the pool to be recreated.
    """
    body = generate_node_pool_update(params)
    if body == generate_node_pool_update(parameters_from_node_pool(pool)):
        return None
    return body


def changed_fields(params: dict[str, Any], pool: dict[str, Any]) -> list[str]:
    """List the top-level parameters that differ from the observed NodePool."""
    current = late_initialize_object({}, parameters_from_node_pool(pool), MAP_FIELDS)
    return diff_fields(params, current, IDENTITY_FIELDS)


def generate_autoscaling_update(params: dict[str, Any]) -> dict[str, Any]:
    """Build the SetNodePoolAutoscalingRequest body."""
    return {"autoscaling": _pick(params.get("autoscaling"), AUTOSCALING_FIELDS) or {}}


def generate_management_update(params: dict[str, Any]) -> dict[str, Any]:
    """Build the SetNodePoolManagementRequest body."""
    return {"management": _pick(params.get("management"), MANAGEMENT_FIELDS) or {}}


def generate_partial_update(params: dict[str, Any], kind: NodePoolUpdateKind) -> dict[str, Any]:
    """Build the minimal update body for the selected update kind.

    Raises:
        ValueError: If called with NO_UPDATE
    """
    if kind is NodePoolUpdateKind.AUTOSCALING:
        return generate_autoscaling_update(params)
    if kind is NodePoolUpdateKind.MANAGEMENT:
        return generate_management_update(params)
    if kind is NodePoolUpdateKind.GENERAL:
        return generate_node_pool_update(params)
    raise ValueError(f"no update payload for {kind.value}")


def parameters_from_node_pool(pool: dict[str, Any]) -> dict[str, Any]:
    """Project an observed NodePool into the forProvider parameter shape."""
    config = pool.get("config") or {}
    params_config: dict[str, Any] | None = None
    if config:
        params_config = {field: config.get(field) for field in CONFIG_SCALAR_FIELDS + CONFIG_COLLECTION_FIELDS}
        params_config["accelerators"] = [
            {"acceleratorCount": _as_int(a.get("acceleratorCount")), "acceleratorType": a.get("acceleratorType")}
            for a in config.get("accelerators") or []
        ]
        params_config["taints"] = [
            {"key": t.get("key"), "value": t.get("value"), "effect": t.get("effect")}
            for t in config.get("taints") or []
        ]
        params_config["sandboxConfig"] = _pick(config.get("sandboxConfig"), ("sandboxType",))
        params_config["shieldedInstanceConfig"] = _pick(
            config.get("shieldedInstanceConfig"), ("enableIntegrityMonitoring", "enableSecureBoot")
        )
        params_config["workloadMetadataConfig"] = _pick(config.get("workloadMetadataConfig"), ("nodeMetadata",))

    max_pods = (pool.get("maxPodsConstraint") or {}).get("maxPodsPerNode")
    params = {
        "initialNodeCount": pool.get("initialNodeCount"),
        "locations": pool.get("locations"),
        "version": pool.get("version"),
        "autoscaling": _pick(pool.get("autoscaling"), AUTOSCALING_FIELDS),
        "config": params_config,
        "management": _pick(pool.get("management"), MANAGEMENT_FIELDS),
        "maxPodsConstraint": {"maxPodsPerNode": _as_int(max_pods)},
    }
    return prune_zero(params) or {}


def late_initialize_spec(params: dict[str, Any], pool: dict[str, Any]) -> dict[str, Any]:
    """Fill unset parameters from the observed NodePool, in place.

    Returns:
        The same params dict
    """
    late_initialize_object(params, parameters_from_node_pool(pool), MAP_FIELDS)
    return params


def is_up_to_date(params: dict[str, Any], pool: dict[str, Any]) -> tuple[bool, NodePoolUpdateKind]:
    """Check whether the observed NodePool matches the desired parameters.

    Autoscaling wins over management, which wins over everything else.
    Only one kind is reported per call.

    Args:
        params: Desired forProvider parameters
        pool: NodePool as returned by the container API

    Returns:
        Tuple of (is_up_to_date, update_kind)
    """
    current = late_initialize_object({}, parameters_from_node_pool(pool), MAP_FIELDS)
    return classify_drift(
        params,
        current,
        categories=(
            ("autoscaling", NodePoolUpdateKind.AUTOSCALING),
            ("management", NodePoolUpdateKind.MANAGEMENT),
        ),
        general=NodePoolUpdateKind.GENERAL,
        no_update=NodePoolUpdateKind.NO_UPDATE,
        ignored=IDENTITY_FIELDS,
    )


def get_fully_qualified_name(params: dict[str, Any], name: str) -> str:
    """Build the fully qualified name of a node pool."""
    return NODE_POOL_NAME_FORMAT.format(cluster=params.get("cluster") or "", name=name)
