"""Cross-cell duplicate suppression for one engine run."""

import threading


class Deduplicator:
    def __init__(self) -> None:
        self._seen = set()
        self._lock = threading.Lock()

    def admit(self, external_id: str) -> bool:
        """Return True the first time ``external_id`` is seen, False afterwards."""
        with self._lock:
            if external_id in self._seen:
                return False
            self._seen.add(external_id)
            return True

    def __contains__(self, external_id: object) -> bool:
        with self._lock:
            return external_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
