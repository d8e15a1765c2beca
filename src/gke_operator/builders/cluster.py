"""Builder for GKE cluster payloads and connection details."""

from __future__ import annotations

import base64
import copy
from enum import Enum
from typing import Any

import yaml

from ..constants import (
    CONNECTION_CA_KEY,
    CONNECTION_CLIENT_CERT_KEY,
    CONNECTION_CLIENT_KEY_KEY,
    CONNECTION_ENDPOINT_KEY,
    CONNECTION_KUBECONFIG_KEY,
    CONNECTION_PASSWORD_KEY,
    CONNECTION_USERNAME_KEY,
)
from ..utils.drift import classify_drift, diff_fields
from ..utils.late_init import late_initialize_object, prune_zero

CLUSTER_NAME_FORMAT = "projects/{project}/locations/{location}/clusters/{name}"
PARENT_FORMAT = "projects/{project}/locations/{location}"

MAP_FIELDS = frozenset({"resourceLabels"})
IDENTITY_FIELDS = ("location",)

SCALAR_FIELDS = (
    "description",
    "initialClusterVersion",
    "initialNodeCount",
    "network",
    "subnetwork",
    "loggingService",
    "monitoringService",
    "enableKubernetesAlpha",
)
IP_ALLOCATION_FIELDS = (
    "useIpAliases",
    "createSubnetwork",
    "subnetworkName",
    "clusterIpv4CidrBlock",
    "servicesIpv4CidrBlock",
)

# Fields clusters.update can change, in the order they are applied
MUTABLE_FIELDS = (
    ("locations", "desiredLocations"),
    ("loggingService", "desiredLoggingService"),
    ("monitoringService", "desiredMonitoringService"),
)


class ClusterUpdateKind(str, Enum):
    """The single kind of partial update applied in one cycle."""

    NO_UPDATE = "NoUpdate"
    LABELS = "LabelsUpdate"
    LEGACY_ABAC = "LegacyAbacUpdate"
    NETWORK_POLICY = "NetworkPolicyUpdate"
    GENERAL = "GeneralUpdate"


def _pick(source: dict[str, Any] | None, fields: tuple[str, ...]) -> dict[str, Any] | None:
    if not source:
        return None
    return prune_zero({f: source.get(f) for f in fields})


def _master_auth(source: dict[str, Any] | None, include_password: bool) -> dict[str, Any] | None:
    if not source:
        return None
    fields: tuple[str, ...] = ("username", "password") if include_password else ("username",)
    auth = {f: source.get(f) for f in fields}
    auth["clientCertificateConfig"] = _pick(source.get("clientCertificateConfig"), ("issueClientCertificate",))
    return prune_zero(auth)


def generate_cluster(params: dict[str, Any], name: str) -> dict[str, Any]:
    """Build the Cluster body for a create call.

    Args:
        params: GKECluster forProvider parameters
        name: External name of the cluster

    Returns:
        Cluster resource body
    """
    cluster: dict[str, Any] = {"name": name}
    for field in SCALAR_FIELDS:
        if params.get(field) not in (None, ""):
            cluster[field] = params[field]
    if params.get("locations"):
        cluster["locations"] = list(params["locations"])
    if params.get("resourceLabels"):
        cluster["resourceLabels"] = dict(params["resourceLabels"])

    sub_structures = {
        "masterAuth": _master_auth(params.get("masterAuth"), include_password=True),
        "legacyAbac": _pick(params.get("legacyAbac"), ("enabled",)),
        "networkPolicy": _pick(params.get("networkPolicy"), ("enabled", "provider")),
        "ipAllocationPolicy": _pick(params.get("ipAllocationPolicy"), IP_ALLOCATION_FIELDS),
    }
    cluster.update({k: v for k, v in sub_structures.items() if v})
    return cluster


def generate_observation(cluster: dict[str, Any]) -> dict[str, Any]:
    """Project a Cluster into the ``status.atProvider`` shape."""
    observation = {
        field: cluster.get(field)
        for field in (
            "status",
            "statusMessage",
            "endpoint",
            "currentMasterVersion",
            "currentNodeVersion",
            "currentNodeCount",
            "selfLink",
            "location",
            "zone",
            "createTime",
            "nodeIpv4CidrSize",
            "servicesIpv4Cidr",
            "clusterIpv4Cidr",
        )
    }
    observation["conditions"] = [
        {"code": c.get("code"), "message": c.get("message")}
        for c in cluster.get("conditions") or []
        if c
    ]
    return {k: v for k, v in observation.items() if v not in (None, [])}


def parameters_from_cluster(cluster: dict[str, Any]) -> dict[str, Any]:
    """Project an observed Cluster into the forProvider parameter shape.

    The master password is left out so it never lands in the spec.
    """
    params: dict[str, Any] = {field: cluster.get(field) for field in SCALAR_FIELDS}
    params.update({
        "locations": cluster.get("locations"),
        "resourceLabels": cluster.get("resourceLabels"),
        "masterAuth": _master_auth(cluster.get("masterAuth"), include_password=False),
        "legacyAbac": _pick(cluster.get("legacyAbac"), ("enabled",)),
        "networkPolicy": _pick(cluster.get("networkPolicy"), ("enabled", "provider")),
        "ipAllocationPolicy": _pick(cluster.get("ipAllocationPolicy"), IP_ALLOCATION_FIELDS),
    })
    return prune_zero(params) or {}


def late_initialize_spec(params: dict[str, Any], cluster: dict[str, Any]) -> dict[str, Any]:
    """Fill unset parameters from the observed Cluster, in place."""
    late_initialize_object(params, parameters_from_cluster(cluster), MAP_FIELDS)
    return params


def _comparable(params: dict[str, Any]) -> dict[str, Any]:
    comparable = copy.deepcopy(params)
    auth = comparable.get("masterAuth")
    if isinstance(auth, dict):
        auth.pop("password", None)
    return comparable


def is_up_to_date(params: dict[str, Any], cluster: dict[str, Any]) -> tuple[bool, ClusterUpdateKind]:
    """Check whether the observed Cluster matches the desired parameters.

    Args:
        params: Desired forProvider parameters
        cluster: Cluster as returned by the container API

    Returns:
        Tuple of (is_up_to_date, update_kind)
    """
    current = late_initialize_object({}, parameters_from_cluster(cluster), MAP_FIELDS)
    return classify_drift(
        _comparable(params),
        current,
        categories=(
            ("resourceLabels", ClusterUpdateKind.LABELS),
            ("legacyAbac", ClusterUpdateKind.LEGACY_ABAC),
            ("networkPolicy", ClusterUpdateKind.NETWORK_POLICY),
        ),
        general=ClusterUpdateKind.GENERAL,
        no_update=ClusterUpdateKind.NO_UPDATE,
        ignored=IDENTITY_FIELDS,
    )


def changed_fields(params: dict[str, Any], cluster: dict[str, Any]) -> list[str]:
    """List the top-level parameters that differ from the observed Cluster."""
    return diff_fields(_comparable(params), parameters_from_cluster(cluster), IDENTITY_FIELDS)


def generate_labels_update(params: dict[str, Any], cluster: dict[str, Any]) -> dict[str, Any]:
    """Build the SetLabelsRequest body, carrying the observed fingerprint."""
    return {
        "resourceLabels": dict(params.get("resourceLabels") or {}),
        "labelFingerprint": cluster.get("labelFingerprint", ""),
    }


def generate_legacy_abac_update(params: dict[str, Any]) -> dict[str, Any]:
    """Build the SetLegacyAbacRequest body."""
    return {"enabled": bool((params.get("legacyAbac") or {}).get("enabled"))}


def generate_network_policy_update(params: dict[str, Any]) -> dict[str, Any]:
    """Build the SetNetworkPolicyRequest body."""
    return {"networkPolicy": _pick(params.get("networkPolicy"), ("enabled", "provider")) or {}}


def generate_cluster_update(params: dict[str, Any], cluster: dict[str, Any]) -> dict[str, Any] | None:
    """Build the UpdateClusterRequest body for a general update.

    clusters.update accepts one desired field per call. The first mutable
    field that differs is chosen.

    Returns:
        Request body, or None when only immutable fields differ
    """
    current = parameters_from_cluster(cluster)
    for field, desired_field in MUTABLE_FIELDS:
        want = prune_zero(params.get(field))
        if want is not None and want != current.get(field):
            return {"update": {desired_field: copy.deepcopy(params[field])}}
    return None


def get_fully_qualified_name(project: str, params: dict[str, Any], name: str) -> str:
    """Build the fully qualified name of a cluster.

    External names that are already fully qualified are used as is.
    """
    if name.startswith("projects/"):
        return name
    return CLUSTER_NAME_FORMAT.format(project=project, location=params.get("location") or "-", name=name)


def get_parent(project: str, params: dict[str, Any]) -> str:
    """Build the parent location of a cluster."""
    return PARENT_FORMAT.format(project=project, location=params.get("location") or "-")


def generate_kubeconfig(cluster: dict[str, Any]) -> str:
    """Render a kubeconfig for the cluster's master endpoint."""
    name = cluster.get("name", "cluster")
    auth = cluster.get("masterAuth") or {}

    user: dict[str, Any] = {}
    if auth.get("username"):
        user["username"] = auth["username"]
        user["password"] = auth.get("password", "")
    if auth.get("clientCertificate"):
        user["client-certificate-data"] = auth["clientCertificate"]
    if auth.get("clientKey"):
        user["client-key-data"] = auth["clientKey"]

    server: dict[str, Any] = {"server": f"https://{cluster['endpoint']}"}
    if auth.get("clusterCaCertificate"):
        server["certificate-authority-data"] = auth["clusterCaCertificate"]

    config = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": name, "cluster": server}],
        "users": [{"name": name, "user": user}],
        "contexts": [{"name": name, "context": {"cluster": name, "user": name}}],
        "current-context": name,
    }
    return yaml.safe_dump(config, default_flow_style=False, sort_keys=False)


def connection_details(cluster: dict[str, Any]) -> dict[str, bytes]:
    """Derive connection details for a cluster.

    Returns:
        Mapping of connection secret keys to raw bytes, empty until the
        master endpoint has been assigned
    """
    if not cluster.get("endpoint"):
        return {}

    auth = cluster.get("masterAuth") or {}
    details = {
        CONNECTION_ENDPOINT_KEY: f"https://{cluster['endpoint']}".encode(),
        CONNECTION_USERNAME_KEY: (auth.get("username") or "").encode(),
        CONNECTION_PASSWORD_KEY: (auth.get("password") or "").encode(),
        CONNECTION_CA_KEY: base64.b64decode(auth.get("clusterCaCertificate") or ""),
        CONNECTION_CLIENT_CERT_KEY: base64.b64decode(auth.get("clientCertificate") or ""),
        CONNECTION_CLIENT_KEY_KEY: base64.b64decode(auth.get("clientKey") or ""),
        CONNECTION_KUBECONFIG_KEY: generate_kubeconfig(cluster).encode(),
    }
    return {k: v for k, v in details.items() if v}
