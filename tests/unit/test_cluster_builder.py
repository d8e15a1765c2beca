"""Unit tests for cluster builder."""

from __future__ import annotations

import base64

import yaml

from gke_operator.builders.cluster import (
    ClusterUpdateKind,
    changed_fields,
    connection_details,
    generate_cluster,
    generate_cluster_update,
    generate_labels_update,
    generate_legacy_abac_update,
    generate_network_policy_update,
    generate_observation,
    get_fully_qualified_name,
    get_parent,
    is_up_to_date,
    late_initialize_spec,
    parameters_from_cluster,
)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def _observed_cluster(**overrides):
    cluster = {
        "name": "c1",
        "location": "us-central1",
        "status": "RUNNING",
        "endpoint": "34.1.2.3",
        "initialClusterVersion": "1.29",
        "currentMasterVersion": "1.29.1-gke.1",
        "network": "default",
        "subnetwork": "default",
        "loggingService": "logging.googleapis.com/kubernetes",
        "monitoringService": "monitoring.googleapis.com/kubernetes",
        "locations": ["us-central1-a"],
        "resourceLabels": {"env": "prod"},
        "labelFingerprint": "fp-1",
        "networkPolicy": {"enabled": True, "provider": "CALICO"},
        "ipAllocationPolicy": {"useIpAliases": True},
        "masterAuth": {
            "username": "admin",
            "password": "s3cret",
            "clusterCaCertificate": _b64("CA-PEM"),
            "clientCertificate": _b64("CERT-PEM"),
            "clientKey": _b64("KEY-PEM"),
        },
    }
    cluster.update(overrides)
    return cluster


class TestGenerateCluster:
    """Test cases for generate_cluster function."""

    def test_empty_params(self):
        """Test that empty parameters produce a bare cluster."""
        assert generate_cluster({}, "c1") == {"name": "c1"}

    def test_full_params(self):
        """Test that parameters map onto the provider shape, password included."""
        params = {
            "location": "us-central1",
            "initialNodeCount": 1,
            "network": "vpc",
            "resourceLabels": {"env": "dev"},
            "masterAuth": {"username": "admin", "password": "pw"},
            "networkPolicy": {"enabled": False},
            "ipAllocationPolicy": {"useIpAliases": True, "clusterIpv4CidrBlock": "/14"},
        }

        cluster = generate_cluster(params, "c1")

        assert "location" not in cluster
        assert cluster["network"] == "vpc"
        assert cluster["masterAuth"] == {"username": "admin", "password": "pw"}
        assert "networkPolicy" not in cluster
        assert cluster["ipAllocationPolicy"] == {"useIpAliases": True, "clusterIpv4CidrBlock": "/14"}


class TestObservation:
    """Test cases for observation and parameter projection."""

    def test_generate_observation(self):
        """Test that observation carries endpoint and versions."""
        observation = generate_observation(_observed_cluster())

        assert observation["endpoint"] == "34.1.2.3"
        assert observation["currentMasterVersion"] == "1.29.1-gke.1"
        assert "masterAuth" not in observation

    def test_parameters_exclude_password(self):
        """Test that the master password never reaches the parameters."""
        params = parameters_from_cluster(_observed_cluster())
        assert params["masterAuth"] == {"username": "admin"}


class TestIsUpToDate:
    """Test cases for is_up_to_date function."""

    def test_late_initialized_params_are_up_to_date(self):
        """Test that a spec filled from the cluster matches it."""
        cluster = _observed_cluster()
        params = late_initialize_spec({"location": "us-central1"}, cluster)

        assert is_up_to_date(params, cluster) == (True, ClusterUpdateKind.NO_UPDATE)

    def test_password_ignored(self):
        """Test that a desired password does not count as drift."""
        cluster = _observed_cluster()
        params = late_initialize_spec({"masterAuth": {"username": "admin", "password": "pw"}}, cluster)

        assert is_up_to_date(params, cluster)[0] is True

    def test_labels_have_priority(self):
        """Test that label drift wins over other drift."""
        cluster = _observed_cluster()
        params = late_initialize_spec({}, cluster)
        params["resourceLabels"] = {"env": "dev"}
        params["legacyAbac"] = {"enabled": True}

        assert is_up_to_date(params, cluster) == (False, ClusterUpdateKind.LABELS)

    def test_legacy_abac(self):
        """Test legacy ABAC drift."""
        cluster = _observed_cluster()
        params = late_initialize_spec({}, cluster)
        params["legacyAbac"] = {"enabled": True}

        assert is_up_to_date(params, cluster) == (False, ClusterUpdateKind.LEGACY_ABAC)

    def test_network_policy(self):
        """Test network policy drift."""
        cluster = _observed_cluster()
        params = late_initialize_spec({}, cluster)
        params["networkPolicy"] = {"enabled": False}

        assert is_up_to_date(params, cluster) == (False, ClusterUpdateKind.NETWORK_POLICY)

    def test_general(self):
        """Test general drift."""
        cluster = _observed_cluster()
        params = late_initialize_spec({}, cluster)
        params["loggingService"] = "none"

        assert is_up_to_date(params, cluster) == (False, ClusterUpdateKind.GENERAL)


class TestUpdateBodies:
    """Test cases for update request bodies."""

    def test_labels_update_carries_fingerprint(self):
        """Test that label updates carry the observed fingerprint."""
        body = generate_labels_update({"resourceLabels": {"env": "dev"}}, _observed_cluster())
        assert body == {"resourceLabels": {"env": "dev"}, "labelFingerprint": "fp-1"}

    def test_legacy_abac_update(self):
        """Test legacy ABAC body defaults to disabled."""
        assert generate_legacy_abac_update({}) == {"enabled": False}
        assert generate_legacy_abac_update({"legacyAbac": {"enabled": True}}) == {"enabled": True}

    def test_network_policy_update(self):
        """Test network policy body."""
        body = generate_network_policy_update({"networkPolicy": {"enabled": True, "provider": "CALICO"}})
        assert body == {"networkPolicy": {"enabled": True, "provider": "CALICO"}}

    def test_cluster_update_picks_mutable_field(self):
        """Test that the first differing mutable field is sent."""
        params = {"loggingService": "none", "monitoringService": "none"}
        body = generate_cluster_update(params, _observed_cluster())
        assert body == {"update": {"desiredLoggingService": "none"}}

    def test_cluster_update_immutable_only(self):
        """Test that immutable drift yields no update body."""
        cluster = _observed_cluster()
        params = late_initialize_spec({}, cluster)
        params["network"] = "other"

        assert generate_cluster_update(params, cluster) is None
        assert changed_fields(params, cluster) == ["network"]


class TestNames:
    """Test cases for name helpers."""

    def test_fully_qualified_name(self):
        """Test that short names are qualified with project and location."""
        name = get_fully_qualified_name("proj", {"location": "europe-west1"}, "c1")
        assert name == "projects/proj/locations/europe-west1/clusters/c1"

    def test_fully_qualified_name_passthrough(self):
        """Test that qualified external names are used as is."""
        name = "projects/other/locations/us-east1/clusters/c9"
        assert get_fully_qualified_name("proj", {"location": "europe-west1"}, name) == name

    def test_parent(self):
        """Test parent location."""
        assert get_parent("proj", {"location": "us-central1"}) == "projects/proj/locations/us-central1"


class TestConnectionDetails:
    """Test cases for connection_details function."""

    def test_no_endpoint(self):
        """Test that nothing is published before the endpoint exists."""
        assert connection_details(_observed_cluster(endpoint=None)) == {}

    def test_details(self):
        """Test that certificates are decoded and a kubeconfig is rendered."""
        details = connection_details(_observed_cluster())

        assert details["endpoint"] == b"https://34.1.2.3"
        assert details["username"] == b"admin"
        assert details["password"] == b"s3cret"
        assert details["clusterCA"] == b"CA-PEM"
        assert details["clientCert"] == b"CERT-PEM"
        assert details["clientKey"] == b"KEY-PEM"

        kubeconfig = yaml.safe_load(details["kubeconfig"])
        assert kubeconfig["current-context"] == "c1"
        assert kubeconfig["clusters"][0]["cluster"]["server"] == "https://34.1.2.3"

    def test_empty_values_dropped(self):
        """Test that missing credentials are left out."""
        details = connection_details(_observed_cluster(masterAuth={}))

        assert set(details) == {"endpoint", "kubeconfig"}
