"""Tests for late-initialization utilities."""

from __future__ import annotations

from gke_operator.utils.late_init import (
    is_zero,
    late_initialize_list,
    late_initialize_map,
    late_initialize_object,
    late_initialize_value,
    prune_zero,
)


class TestIsZero:
    """Test cases for is_zero function."""

    def test_zero_values(self):
        """Test that empty and falsy values are zero."""
        for value in (None, "", 0, 0.0, False, [], {}):
            assert is_zero(value) is True

    def test_non_zero_values(self):
        """Test that set values are not zero."""
        for value in ("a", 1, True, [0], {"a": None}):
            assert is_zero(value) is False


class TestPruneZero:
    """Test cases for prune_zero function."""

    def test_prunes_nested_dicts(self):
        """Test that zero entries are dropped recursively."""
        value = {"a": 1, "b": {"c": None, "d": False}, "e": [], "f": [{"g": 0}, {"h": "x"}]}
        assert prune_zero(value) == {"a": 1, "f": [{"h": "x"}]}

    def test_returns_none_when_empty(self):
        """Test that an all-zero dict collapses to None."""
        assert prune_zero({"a": None, "b": {}}) is None

    def test_keeps_scalar_list_elements(self):
        """Test that scalar list elements are kept even when zero."""
        assert prune_zero(["", "a"]) == ["", "a"]


class TestLateInitializeValue:
    """Test cases for late_initialize_value function."""

    def test_keeps_set_value(self):
        """Test that a user-set value is never replaced."""
        assert late_initialize_value("n1-standard-1", "e2-medium") == "n1-standard-1"

    def test_keeps_explicit_false(self):
        """Test that an explicit False is a set value."""
        assert late_initialize_value(False, True) is False

    def test_adopts_observed(self):
        """Test that an unset value adopts the observed one."""
        assert late_initialize_value(None, 100) == 100

    def test_ignores_observed_zero(self):
        """Test that observed zero values are not adopted."""
        assert late_initialize_value(None, 0) is None
        assert late_initialize_value(None, "") is None


class TestLateInitializeCollections:
    """Test cases for list and map late-initialization."""

    def test_list_replaced_wholesale_when_empty(self):
        """Test that an empty list adopts the observed list."""
        assert late_initialize_list([], ["a", "b"]) == ["a", "b"]
        assert late_initialize_list(None, ["a"]) == ["a"]

    def test_list_never_merged(self):
        """Test that a non-empty list is kept as is."""
        assert late_initialize_list(["a"], ["a", "b"]) == ["a"]

    def test_map_replaced_wholesale_when_empty(self):
        """Test that an empty map adopts the observed map."""
        assert late_initialize_map({}, {"env": "prod"}) == {"env": "prod"}

    def test_map_never_merged(self):
        """Test that a non-empty map does not gain observed keys."""
        assert late_initialize_map({"team": "a"}, {"env": "prod"}) == {"team": "a"}


class TestLateInitializeObject:
    """Test cases for late_initialize_object function."""

    def test_absent_object_adopts_observed(self):
        """Test that a missing sub-object adopts the observed one without zero fields."""
        result = late_initialize_object(None, {"enabled": True, "minNodeCount": 0})
        assert result == {"enabled": True}

    def test_fills_only_unset_fields(self):
        """Test that set fields survive and unset fields are filled."""
        current = {"machineType": "n1-standard-1", "diskSizeGb": None}
        observed = {"machineType": "e2-medium", "diskSizeGb": 100, "imageType": "COS"}

        result = late_initialize_object(current, observed)

        assert result is current
        assert current == {"machineType": "n1-standard-1", "diskSizeGb": 100, "imageType": "COS"}

    def test_nested_objects(self):
        """Test that nested objects are walked field by field."""
        current = {"config": {"machineType": "n1-standard-1"}}
        observed = {"config": {"machineType": "e2-medium", "diskType": "pd-ssd"}}

        late_initialize_object(current, observed)

        assert current["config"] == {"machineType": "n1-standard-1", "diskType": "pd-ssd"}

    def test_map_fields_not_merged(self):
        """Test that named map fields are replaced wholesale rather than merged."""
        current = {"labels": {"team": "a"}}
        observed = {"labels": {"team": "b", "env": "prod"}}

        late_initialize_object(current, observed, maps=("labels",))

        assert current["labels"] == {"team": "a"}

    def test_observed_zero_not_added(self):
        """Test that observed zero fields do not add keys."""
        current: dict = {}
        late_initialize_object(current, {"preemptible": False, "localSsdCount": 0})
        assert current == {}

    def test_empty_observed_returns_current(self):
        """Test that nothing observed leaves the current object untouched."""
        current = {"a": 1}
        assert late_initialize_object(current, None) is current
        assert late_initialize_object(None, {}) is None
