"""Classification of differences between desired and observed state."""

from __future__ import annotations

from typing import Any, Iterable, Sequence, TypeVar

from .late_init import prune_zero

_K = TypeVar("_K")


def _projection(params: dict[str, Any] | None, ignored: Iterable[str]) -> dict[str, Any]:
    ignored = set(ignored)
    trimmed = {k: v for k, v in (params or {}).items() if k not in ignored}
    return prune_zero(trimmed) or {}


def diff_fields(
    desired: dict[str, Any] | None,
    current: dict[str, Any] | None,
    ignored: Iterable[str] = (),
) -> list[str]:
    """List the top-level fields whose values differ."""
    want = _projection(desired, ignored)
    have = _projection(current, ignored)
    return sorted(k for k in set(want) | set(have) if want.get(k) != have.get(k))


def classify_drift(
    desired: dict[str, Any] | None,
    current: dict[str, Any] | None,
    categories: Sequence[tuple[str, _K]],
    general: _K,
    no_update: _K,
    ignored: Iterable[str] = (),
) -> tuple[bool, _K]:
    """Decide which single update, if any, brings current closer to desired.

    Categories are checked in order and the first differing one wins, even
    when later categories or other fields also differ. Both sides are
    compared with zero values pruned so that unset and provider-omitted
    fields compare equal.

    Args:
        desired: Desired parameters
        current: Observed state projected into parameter shape
        categories: Ordered (field name, update kind) pairs
        general: Kind returned when only uncategorised fields differ
        no_update: Kind returned when nothing differs
        ignored: Identity fields that are never compared

    Returns:
        Tuple of (is_up_to_date, update_kind)
    """
    want = _projection(desired, ignored)
    have = _projection(current, ignored)

    for field, kind in categories:
        if want.get(field) != have.get(field):
            return False, kind
    if want != have:
        return False, general
    return True, no_update
