"""
Snapshot stores — slug → {snapshot, retry_at}.

Entries are immutable; a rebuild swaps in a new entry, so a reader sees
either the old snapshot or the new one, never a partial one. Entries are
populated lazily and never evicted.

Each store also owns the per-slug rebuild lock:
  MemorySnapshotStore — a set of slugs, for a single process
  RedisSnapshotStore  — SET NX EX, shared by every worker process
"""
import logging
from typing import Optional

import redis.asyncio as aioredis
from pydantic import BaseModel

from inkwell.schemas import DetailSnapshot

logger = logging.getLogger(__name__)


class SnapshotEntry(BaseModel):
    snapshot: DetailSnapshot
    # Set after a failed rebuild: no new attempt before this time
    retry_at: Optional[float] = None

    class Config:
        frozen = True

    @property
    def generated_at(self) -> float:
        return self.snapshot.generated_at


class MemorySnapshotStore:
    def __init__(self) -> None:
        self._entries: dict[str, SnapshotEntry] = {}
        self._locked: set[str] = set()

    async def get(self, slug: str) -> Optional[SnapshotEntry]:
        return self._entries.get(slug)

    async def put(self, slug: str, entry: SnapshotEntry) -> None:
        self._entries[slug] = entry

    async def acquire_rebuild(self, slug: str) -> bool:
        if slug in self._locked:
            return False
        self._locked.add(slug)
        return True

    async def release_rebuild(self, slug: str) -> None:
        self._locked.discard(slug)

    def __len__(self) -> int:
        return len(self._entries)


class RedisSnapshotStore:
    def __init__(
        self,
        redis: aioredis.Redis,
        prefix: str = "page:",
        lock_ttl: int = 30,
    ) -> None:
        self.redis = redis
        self.prefix = prefix
        self.lock_ttl = lock_ttl

    def _key(self, slug: str) -> str:
        return f"{self.prefix}{slug}"

    def _lock_key(self, slug: str) -> str:
        return f"lock:{self.prefix}{slug}"

    async def get(self, slug: str) -> Optional[SnapshotEntry]:
        raw = await self.redis.get(self._key(slug))
        if raw is None:
            return None
        return SnapshotEntry.model_validate_json(raw)

    async def put(self, slug: str, entry: SnapshotEntry) -> None:
        # Single SET: readers in other processes see old or new, never a mix
        await self.redis.set(self._key(slug), entry.model_dump_json(by_alias=True))

    async def acquire_rebuild(self, slug: str) -> bool:
        # TTL bounds how long a crashed worker can block rebuilds of a slug
        acquired = await self.redis.set(self._lock_key(slug), "1", nx=True, ex=self.lock_ttl)
        if not acquired:
            logger.debug("Rebuild of %s already claimed by another worker", slug)
        return bool(acquired)

    async def release_rebuild(self, slug: str) -> None:
        await self.redis.delete(self._lock_key(slug))
