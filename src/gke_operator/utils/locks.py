"""Per-key mutual exclusion for reconciliation cycles."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """Non-blocking lock keyed by resource.

    kopf runs synchronous handlers on a thread pool, so two triggers for the
    same resource can overlap. The second caller does not wait: it is told
    the key is busy and is expected to defer itself.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: set[str] = set()

    @contextmanager
    def hold(self, key: str) -> Iterator[bool]:
        """Try to take the lock for ``key``.

        Yields:
            True if this caller holds the key, False if another cycle does
        """
        with self._guard:
            acquired = key not in self._held
            if acquired:
                self._held.add(key)
        try:
            yield acquired
        finally:
            if acquired:
                with self._guard:
                    self._held.discard(key)
