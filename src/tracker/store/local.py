from __future__ import annotations

import threading
from typing import Optional

class LocalStore:
    """
    In-process member -> time-to-die map behind one mutex.
    Every method takes the lock exactly once and never calls another method
    while holding it. Volatile: nothing survives the process.
    """
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, float] = {}  # member -> expires_at (epoch s)

    def put(self, member: str, score: float) -> None:
        with self._lock:
            self._entries[member] = score

    def score(self, member: str) -> Optional[float]:
        with self._lock:
            return self._entries.get(member)

    def delete(self, member: str) -> None:
        with self._lock:
            self._entries.pop(member, None)

    def delete_older_than(self, threshold: float) -> int:
        """Drop entries with score strictly below `threshold`. O(n) scan."""
        with self._lock:
            stale = [m for m, ttd in self._entries.items() if ttd < threshold]
            for m in stale:
                del self._entries[m]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class AsyncLocalStore:
    """Awaitable facade over LocalStore; the lock is never held across an await."""

    def __init__(self, inner: Optional[LocalStore] = None) -> None:
        self.inner = inner or LocalStore()

    async def put(self, member: str, score: float) -> None:
        self.inner.put(member, score)

    async def score(self, member: str) -> Optional[float]:
        return self.inner.score(member)

    async def delete(self, member: str) -> None:
        self.inner.delete(member)

    async def delete_older_than(self, threshold: float) -> int:
        return self.inner.delete_older_than(threshold)

    def __len__(self) -> int:
        return len(self.inner)
