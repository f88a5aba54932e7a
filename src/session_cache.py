"""
FitArc — Session Cache

Mapped session lists keyed by (user_id, plan_id). Owned by the caller and
passed to the progress loader; nothing is cached at module level.
"""
import threading


class SessionCache:
    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, plan_id: str = None) -> list[dict] | None:
        with self._lock:
            sessions = self._entries.get((user_id, plan_id))
        return list(sessions) if sessions is not None else None

    def put(self, user_id: str, plan_id: str, sessions: list[dict]) -> None:
        with self._lock:
            self._entries[(user_id, plan_id)] = list(sessions)

    def invalidate(self, user_id: str, plan_id: str = None) -> int:
        """Drop one plan's entry, or every entry of the user when plan_id is None."""
        with self._lock:
            if plan_id is not None:
                return 1 if self._entries.pop((user_id, plan_id), None) is not None else 0
            keys = [k for k in self._entries if k[0] == user_id]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries
