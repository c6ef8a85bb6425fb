from __future__ import annotations

from typing import Optional, Protocol


class HistoryStore(Protocol):
    """Backend contract: member -> score (the entry's expires_at, epoch seconds)."""

    def put(self, member: str, score: float) -> None: ...
    def score(self, member: str) -> Optional[float]: ...
    def delete(self, member: str) -> None: ...
    def delete_older_than(self, threshold: float) -> int: ...


class AsyncHistoryStore(Protocol):
    async def put(self, member: str, score: float) -> None: ...
    async def score(self, member: str) -> Optional[float]: ...
    async def delete(self, member: str) -> None: ...
    async def delete_older_than(self, threshold: float) -> int: ...
