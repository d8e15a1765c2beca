"""Late-initialization of desired state from observed provider data.

Fields the user left unset are filled from what the provider reports.
Fields the user set are never touched, whatever the provider says.

Unset means ``None`` (or absent) for scalars and empty for lists and maps.
Observed zero values (``None``, ``""``, ``0``, ``False``, empty collections)
are never adopted because the provider omits them from its responses.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable


def is_zero(value: Any) -> bool:
    """Check whether a value is the zero value of its type."""
    if value is None:
        return True
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def prune_zero(value: Any) -> Any:
    """Recursively drop zero-valued entries from dicts.

    Dict elements of lists are pruned as well, scalar list elements are kept.
    Returns None when nothing remains.
    """
    if isinstance(value, dict):
        pruned = {}
        for key, item in value.items():
            item = prune_zero(item)
            if not is_zero(item):
                pruned[key] = item
        return pruned or None
    if isinstance(value, list):
        items = [prune_zero(item) if isinstance(item, dict) else item for item in value]
        items = [item for item in items if item is not None]
        return items or None
    return None if is_zero(value) else value


def late_initialize_value(current: Any, observed: Any) -> Any:
    """Return current if set, otherwise the observed value if it is non-zero."""
    if current is not None:
        return current
    if is_zero(observed):
        return None
    return copy.deepcopy(observed)


def late_initialize_list(current: list[Any] | None, observed: list[Any] | None) -> list[Any] | None:
    """Replace an empty list wholesale. Never merges element-wise."""
    if current:
        return current
    if not observed:
        return current
    return prune_zero(copy.deepcopy(observed))


def late_initialize_map(current: dict[str, Any] | None, observed: dict[str, Any] | None) -> dict[str, Any] | None:
    """Replace an empty map wholesale. Never merges key-wise."""
    if current:
        return current
    if not observed:
        return current
    return copy.deepcopy(observed)


def late_initialize_object(
    current: dict[str, Any] | None,
    observed: dict[str, Any] | None,
    maps: Iterable[str] = (),
) -> dict[str, Any] | None:
    """Late-initialize a nested object from its observed counterpart.

    An absent current object adopts the observed object wholesale. A present
    one is walked field by field using the scalar, list, map and object rules.
    The current dict is modified in place and returned.

    Args:
        current: Desired object, or None when the user left it out
        observed: Observed object in the same shape
        maps: Field names holding free-form string maps rather than objects

    Returns:
        The late-initialized object, or None if both sides are empty
    """
    maps = frozenset(maps)
    if not observed:
        return current
    if current is None:
        return prune_zero(copy.deepcopy(observed))

    for key, obs in observed.items():
        cur = current.get(key)
        if isinstance(obs, dict) and key in maps:
            new = late_initialize_map(cur, obs)
        elif isinstance(obs, dict):
            new = late_initialize_object(cur, obs, maps)
        elif isinstance(obs, list):
            new = late_initialize_list(cur, obs)
        else:
            new = late_initialize_value(cur, obs)

        if new is None and key not in current:
            continue
        if new is not cur:
            current[key] = new
    return current
