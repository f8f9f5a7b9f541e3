"""
Per-document debounce ledger.

Remembers when each document last had an export dispatched. Entries live
for the whole watch session, so memory grows with the number of distinct
documents touched during a run.
"""

import threading
from pathlib import Path
from typing import Dict, Optional

DEFAULT_DEBOUNCE_INTERVAL = 0.1  # seconds


class DebounceLedger:
    """Thread-safe mapping of document path to last accepted dispatch time."""

    def __init__(self):
        self._last_dispatch: Dict[Path, float] = {}
        self._lock = threading.Lock()

    def should_dispatch(
        self,
        path: Path,
        now: float,
        min_interval: float = DEFAULT_DEBOUNCE_INTERVAL,
    ) -> bool:
        """
        Atomically check the debounce window and record ``now`` on acceptance.

        Args:
            path: Normalised document path
            now: Current monotonic time in seconds
            min_interval: Minimum seconds between accepted dispatches

        Returns:
            True if the caller should dispatch an export, False if the event
            falls inside the debounce window
        """
        with self._lock:
            last = self._last_dispatch.get(path)
            if last is not None and now - last < min_interval:
                return False
            self._last_dispatch[path] = now
            return True

    def last_dispatch(self, path: Path) -> Optional[float]:
        """Return the last accepted dispatch time for ``path``, if any."""
        with self._lock:
            return self._last_dispatch.get(path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_dispatch)

    def __contains__(self, path: Path) -> bool:
        with self._lock:
            return path in self._last_dispatch
