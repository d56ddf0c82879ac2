import threading
import time
from typing import Any, Dict, Hashable, Optional, Tuple

from app.core.events import ChangeBus, ChangeEvent, REVALIDATE_TOPIC

# --- Page view cache ---

# key: (path, user_id, variant)
# value: (payload, timestamp)
CacheKey = Tuple[str, Optional[str], Hashable]


class ViewCache:
    """
    Short-lived cache of page payloads, dropped per path on revalidation.
    """

    def __init__(self, bus: ChangeBus, ttl_seconds: float = 30.0, max_entries: int = 1024):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[CacheKey, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._subscription = bus.subscribe(REVALIDATE_TOPIC, self._on_revalidate)

    def get(self, path: str, user_id: Optional[str], variant: Hashable = None) -> Optional[Any]:
        """
        Return cached payload if still valid.
        """
        key = (path, user_id, variant)
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            payload, timestamp = entry
            if (time.monotonic() - timestamp) > self.ttl_seconds:
                self._entries.pop(key, None)
                return None
            return payload

    def set(self, path: str, user_id: Optional[str], payload: Any, variant: Hashable = None) -> None:
        key = (path, user_id, variant)
        now = time.monotonic()
        with self._lock:
            self._entries.pop(key, None)
            expired = [k for k, (_, ts) in self._entries.items() if (now - ts) > self.ttl_seconds]
            for stale in expired:
                del self._entries[stale]
            # Still full: drop the oldest entries (dicts keep insertion order)
            while self._entries and len(self._entries) >= self.max_entries:
                self._entries.pop(next(iter(self._entries)))
            self._entries[key] = (payload, now)

    def invalidate_path(self, path: str) -> int:
        """Drop every entry rendered for path; returns how many were dropped."""
        with self._lock:
            stale = [k for k in self._entries if k[0] == path]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def close(self) -> None:
        self._subscription.unsubscribe()

    def _on_revalidate(self, event: ChangeEvent) -> None:
        path = event.record.get("path")
        if path:
            self.invalidate_path(path)
