"""Tests for the generic managed resource reconciler."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from gke_operator.config import OperatorConfig
from gke_operator.constants import FINALIZER
from gke_operator.exceptions import (
    NotFoundError,
    PersistenceConflictError,
    ProviderAPIError,
    ProviderConnectionError,
    TypeMismatchError,
)
from gke_operator.handlers.managed import ManagedReconciler
from gke_operator.resource import ManagedResource
from gke_operator.services.base import ExternalCreation, ExternalObservation, ExternalUpdate
from gke_operator.utils.conditions import get_condition, set_available
from gke_operator.utils.locks import KeyedLock

CONFIG = OperatorConfig(requeue_on_wait_seconds=30, requeue_on_success_seconds=120, min_retry_delay_seconds=5)


@pytest.fixture
def external():
    mock_external = Mock()
    mock_external.create.return_value = ExternalCreation()
    mock_external.update.return_value = ExternalUpdate(update_kind="AutoscalingUpdate")
    return mock_external


@pytest.fixture
def connector(external):
    mock_connector = Mock()
    mock_connector.connect.return_value = external
    return mock_connector


@pytest.fixture
def store():
    return Mock()


@pytest.fixture
def publisher():
    mock_publisher = Mock()
    mock_publisher.publish.return_value = True
    return mock_publisher


@pytest.fixture
def reconciler(connector, store, publisher):
    return ManagedReconciler("NodePool", connector, store, publisher=publisher, config=CONFIG)


@pytest.fixture
def resource(make_body):
    return ManagedResource.from_body(make_body(for_provider={"cluster": "c"}))


def _observe_available(resource, ctx, **kwargs):
    set_available(resource.conditions)
    return ExternalObservation(resource_exists=True, resource_up_to_date=True, **kwargs)


class TestCreate:
    """Test cases for the create path."""

    def test_creates_missing_resource(self, reconciler, resource, external, store):
        """Test that a missing external resource is created and the cycle waits."""
        external.observe.return_value = ExternalObservation(resource_exists=False)

        result = reconciler.reconcile(resource)

        assert result.requeue is True
        assert result.requeue_after == 30
        assert result.error is None
        store.add_finalizer.assert_called_once_with(resource)
        external.create.assert_called_once()
        external.update.assert_not_called()
        assert get_condition(resource.conditions, "Ready")["reason"] == "Creating"
        assert get_condition(resource.conditions, "Synced")["reason"] == "ReconcileSuccess"
        assert resource.status["observedGeneration"] == 2
        store.update_status.assert_called_once_with(resource)

    def test_finalizer_before_create(self, reconciler, resource, external, store):
        """Test that the finalizer is persisted before the create call."""
        calls = []
        store.add_finalizer.side_effect = lambda r: calls.append("finalizer")
        external.create.side_effect = lambda r, c: calls.append("create") or ExternalCreation()
        external.observe.return_value = ExternalObservation(resource_exists=False)

        reconciler.reconcile(resource)

        assert calls == ["finalizer", "create"]

    def test_second_cycle_does_not_create_again(self, reconciler, resource, external):
        """Test that once the resource exists no second create is issued."""
        external.observe.side_effect = [
            ExternalObservation(resource_exists=False),
            ExternalObservation(resource_exists=True, resource_up_to_date=True),
        ]

        reconciler.reconcile(resource)
        reconciler.reconcile(resource)

        assert external.create.call_count == 1

    def test_create_failure(self, reconciler, resource, external, store, mock_kopf_event):
        """Test that a failed create records the error and requeues immediately."""
        external.observe.return_value = ExternalObservation(resource_exists=False)
        external.create.side_effect = ProviderAPIError("quota exceeded", status=403)

        result = reconciler.reconcile(resource)

        assert result.requeue is True
        assert result.requeue_after == 0
        assert str(result.error) == "cannot create external resource: quota exceeded"
        synced = get_condition(resource.conditions, "Synced")
        assert synced["status"] == "False"
        assert "quota exceeded" in synced["message"]
        store.update_status.assert_called_once()
        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert "ReconcileFailed" in reasons


class TestObserve:
    """Test cases for the observe path."""

    def test_up_to_date_and_available(self, reconciler, resource, external):
        """Test that an available, up to date resource requeues at the long interval."""
        external.observe.side_effect = _observe_available

        result = reconciler.reconcile(resource)

        assert result.requeue_after == 120
        external.create.assert_not_called()
        external.update.assert_not_called()

    def test_up_to_date_not_available(self, reconciler, resource, external):
        """Test that a resource that is not yet available requeues at the short interval."""
        external.observe.return_value = ExternalObservation(resource_exists=True, resource_up_to_date=True)

        assert reconciler.reconcile(resource).requeue_after == 30

    def test_late_init_persists_spec(self, reconciler, resource, external, store, mock_kopf_event):
        """Test that late-initialized fields are written back to the spec."""
        external.observe.return_value = ExternalObservation(
            resource_exists=True, resource_up_to_date=True, resource_late_initialized=True
        )

        reconciler.reconcile(resource)

        store.update_spec.assert_called_once_with(resource)
        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert "LateInitializedSpec" in reasons

    def test_no_spec_write_without_late_init(self, reconciler, resource, external, store):
        """Test that the spec is not written when nothing was late-initialized."""
        external.observe.return_value = ExternalObservation(resource_exists=True, resource_up_to_date=True)

        reconciler.reconcile(resource)

        store.update_spec.assert_not_called()

    def test_observe_failure(self, reconciler, resource, external, store):
        """Test that observe errors are wrapped and nothing else is called."""
        external.observe.side_effect = ProviderAPIError("backend error", status=500)

        result = reconciler.reconcile(resource)

        assert str(result.error) == "cannot observe external resource: backend error"
        external.create.assert_not_called()
        store.add_finalizer.assert_not_called()


class TestUpdate:
    """Test cases for the update path."""

    def test_drift_is_updated(self, reconciler, resource, external):
        """Test that drift triggers exactly one update and a short requeue."""
        external.observe.return_value = ExternalObservation(resource_exists=True, resource_up_to_date=False)

        result = reconciler.reconcile(resource)

        external.update.assert_called_once()
        external.create.assert_not_called()
        assert result.requeue_after == 30
        assert "AutoscalingUpdate" in result.message

    def test_update_failure(self, reconciler, resource, external):
        """Test that update errors carry the update context."""
        external.observe.return_value = ExternalObservation(resource_exists=True, resource_up_to_date=False)
        external.update.side_effect = ProviderAPIError("conflict", status=409)

        result = reconciler.reconcile(resource)

        assert str(result.error).startswith("cannot update external resource")


class TestConnectionDetails:
    """Test cases for connection detail publishing."""

    def test_published_when_ref_set(self, make_body, connector, store, publisher, external, mock_kopf_event):
        """Test that observed details go to the publisher."""
        body = make_body(kind="GKECluster", name="c1", writeConnectionSecretToRef={"name": "conn"})
        resource = ManagedResource.from_body(body)
        reconciler = ManagedReconciler("GKECluster", connector, store, publisher=publisher, config=CONFIG)
        external.observe.side_effect = lambda r, c: _observe_available(
            r, c, connection_details={"endpoint": b"https://1.2.3.4"}
        )

        reconciler.reconcile(resource)

        publisher.publish.assert_called_once_with(resource, {"endpoint": b"https://1.2.3.4"})
        assert mock_kopf_event.call_args.kwargs["reason"] == "PublishedConnectionDetails"

    def test_unchanged_secret_posts_no_event(self, make_body, connector, store, publisher, external, mock_kopf_event):
        """Test that republishing identical details stays quiet."""
        publisher.publish.return_value = False
        body = make_body(kind="GKECluster", name="c1", writeConnectionSecretToRef={"name": "conn"})
        resource = ManagedResource.from_body(body)
        reconciler = ManagedReconciler("GKECluster", connector, store, publisher=publisher, config=CONFIG)
        external.observe.side_effect = lambda r, c: _observe_available(r, c, connection_details={"endpoint": b"x"})

        reconciler.reconcile(resource)

        publisher.publish.assert_called_once()
        mock_kopf_event.assert_not_called()

    def test_not_published_without_ref(self, reconciler, resource, publisher, external):
        """Test that nothing is published without a secret reference."""
        external.observe.side_effect = lambda r, c: _observe_available(
            r, c, connection_details={"endpoint": b"x"}
        )

        reconciler.reconcile(resource)

        publisher.publish.assert_not_called()


class TestDelete:
    """Test cases for the delete path."""

    @pytest.fixture
    def deleting(self, make_body):
        body = make_body()
        body["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        body["metadata"]["finalizers"] = [FINALIZER]
        return ManagedResource.from_body(body)

    def test_delete(self, reconciler, deleting, external, store):
        """Test that deletion deletes externally and releases the finalizer."""
        result = reconciler.reconcile(deleting)

        external.delete.assert_called_once()
        external.observe.assert_not_called()
        store.remove_finalizer.assert_called_once_with(deleting)
        assert store.update_status.call_count == 2
        assert result.requeue is False

    def test_delete_not_found_is_success(self, reconciler, deleting, external, store):
        """Test that an external client reporting success for a gone resource completes deletion."""
        external.delete.return_value = None

        result = reconciler.reconcile(deleting)

        assert result.error is None
        store.remove_finalizer.assert_called_once()

    def test_delete_failure_keeps_finalizer(self, reconciler, deleting, external, store):
        """Test that a failed delete keeps the finalizer and retries."""
        external.delete.side_effect = ProviderAPIError("backend error")

        result = reconciler.reconcile(deleting)

        assert result.requeue is True
        store.remove_finalizer.assert_not_called()
        assert get_condition(deleting.conditions, "Ready")["reason"] == "Deleting"

    def test_retain_policy(self, make_body, reconciler, external, connector, store):
        """Test that Retain releases the finalizer without touching the provider."""
        body = make_body(deletionPolicy="Retain")
        body["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        resource = ManagedResource.from_body(body)

        result = reconciler.reconcile(resource)

        connector.connect.assert_not_called()
        external.delete.assert_not_called()
        store.remove_finalizer.assert_called_once_with(resource)
        assert result.requeue is False


class TestErrors:
    """Test cases for error handling."""

    def test_connect_failure(self, reconciler, resource, connector, store):
        """Test that connection errors are retried and recorded."""
        connector.connect.side_effect = ProviderConnectionError("secret missing", operation="cannot get Provider Secret")

        result = reconciler.reconcile(resource)

        assert isinstance(result.error, ProviderConnectionError)
        assert str(result.error) == "cannot connect to provider: cannot get Provider Secret: secret missing"
        assert result.requeue is True
        store.update_status.assert_called_once()

    def test_type_mismatch_is_not_retried(self, reconciler, resource, external, store):
        """Test that a kind mismatch stops without retry."""
        external.observe.side_effect = TypeMismatchError("managed resource is not a NodePool")

        result = reconciler.reconcile(resource)

        assert result.requeue is False
        assert isinstance(result.error, TypeMismatchError)
        store.update_status.assert_not_called()

    @pytest.mark.parametrize("policy", ["Delete", "Retain"])
    def test_wrong_kind_is_rejected_before_any_write(self, make_body, connector, store, policy):
        """Test that a deleting resource of another kind leaves the store untouched."""
        body = make_body(deletionPolicy=policy)
        body["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        body["metadata"]["finalizers"] = [FINALIZER]
        reconciler = ManagedReconciler("GKECluster", connector, store, config=CONFIG)

        result = reconciler.reconcile(ManagedResource.from_body(body))

        assert result.requeue is False
        assert isinstance(result.error, TypeMismatchError)
        assert "GKECluster" in str(result.error)
        connector.connect.assert_not_called()
        store.update_status.assert_not_called()
        store.remove_finalizer.assert_not_called()

    def test_wrong_kind_is_rejected_before_observe(self, make_body, connector, store):
        """Test that a live resource of another kind is never observed or patched."""
        reconciler = ManagedReconciler("GKECluster", connector, store, config=CONFIG)

        result = reconciler.reconcile(ManagedResource.from_body(make_body()))

        assert isinstance(result.error, TypeMismatchError)
        connector.connect.assert_not_called()
        store.add_finalizer.assert_not_called()
        store.update_spec.assert_not_called()

    def test_status_write_failure_is_tolerated(self, reconciler, resource, external, store):
        """Test that failing to record an error does not mask the error."""
        external.observe.side_effect = ProviderAPIError("backend error")
        store.update_status.side_effect = ProviderAPIError("status write failed")

        result = reconciler.reconcile(resource)

        assert "backend error" in str(result.error)

    def test_error_message_is_sanitized(self, reconciler, resource, external):
        """Test that credentials in provider errors do not reach conditions."""
        external.observe.side_effect = ProviderAPIError("token=ya29.secret denied")

        reconciler.reconcile(resource)

        message = get_condition(resource.conditions, "Synced")["message"]
        assert "ya29.secret" not in message

    def test_not_found_on_observe_path(self, reconciler, resource, external):
        """Test that a not-found error escaping observe is still a retryable failure."""
        external.observe.side_effect = NotFoundError("cluster missing")

        result = reconciler.reconcile(resource)

        assert result.requeue is True
        assert isinstance(result.error, NotFoundError)

    def test_spec_conflict_message_is_not_repeated(self, reconciler, resource, external, store):
        """Test that a store error keeps a single operation prefix."""
        external.observe.return_value = ExternalObservation(
            resource_exists=True, resource_up_to_date=True, resource_late_initialized=True
        )
        store.update_spec.side_effect = PersistenceConflictError(
            "resource changed 4 times while writing", operation="cannot update managed resource spec"
        )

        result = reconciler.reconcile(resource)

        assert str(result.error) == "cannot update managed resource spec: resource changed 4 times while writing"
        assert result.requeue is True


class TestLocking:
    """Test cases for per-resource exclusion."""

    def test_busy_resource_is_deferred(self, connector, store, resource):
        """Test that a resource already being reconciled is not reconciled twice."""
        locks = KeyedLock()
        reconciler = ManagedReconciler("NodePool", connector, store, config=CONFIG, locks=locks)

        with locks.hold(resource.key):
            result = reconciler.reconcile(resource)

        assert result.requeue is True
        assert result.requeue_after == 5
        connector.connect.assert_not_called()

    def test_lock_released_after_cycle(self, reconciler, resource, external):
        """Test that the lock is released when the cycle ends."""
        external.observe.return_value = ExternalObservation(resource_exists=True, resource_up_to_date=True)

        reconciler.reconcile(resource)

        with reconciler.locks.hold(resource.key) as acquired:
            assert acquired is True
