"""
Incremental regeneration of detail pages (stale-while-revalidate).

Per slug:

  UNBUILT ──request──▶ build inline ──ok──▶ FRESH
     ▲                      │
     └──────NotFound/error──┘   (nothing stored, 404 / 503 to the caller)

  FRESH ──time > stale_window──▶ STALE ──request──▶ REBUILDING ──ok──▶ FRESH
                                   ▲                     │
                                   └────error/NotFound───┘
                                     (old snapshot kept, retry_at set)

  • FRESH requests are answered from the snapshot store; no store query.
  • STALE requests get the old snapshot immediately and start one
    background rebuild; requests arriving while it runs get the old
    snapshot too and start nothing.
  • A failed rebuild keeps serving the previous snapshot; the next attempt
    is allowed one stale_window after the failed attempt started.
  • Concurrent first requests for an unbuilt slug share one build.

Staleness is evaluated lazily on each request — there are no timers.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from opentelemetry import trace

from inkwell.config import settings
from inkwell.exceptions import NotFound, StoreError
from inkwell.paths import PathRegistry
from inkwell.renderer import DetailRenderer
from inkwell.schemas import DetailSnapshot
from inkwell.snapshots import MemorySnapshotStore, RedisSnapshotStore, SnapshotEntry
from inkwell.telemetry import SNAPSHOT_REBUILDS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SnapshotStore = Union[MemorySnapshotStore, RedisSnapshotStore]


class SnapshotState(str, Enum):
    UNBUILT = "UNBUILT"
    FRESH = "FRESH"
    STALE = "STALE"
    REBUILDING = "REBUILDING"


@dataclass(frozen=True)
class ServeResult:
    snapshot: DetailSnapshot
    state: SnapshotState          # state observed when the request arrived
    rebuild_started: bool = False


class RegenerationScheduler:
    def __init__(
        self,
        renderer: DetailRenderer,
        store: SnapshotStore,
        stale_window: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        registry: Optional[PathRegistry] = None,
    ) -> None:
        self.renderer = renderer
        self.store = store
        self.stale_window = settings.stale_window if stale_window is None else stale_window
        self.clock = clock
        self.registry = registry
        # Inline builds for unbuilt slugs; every waiting request awaits the same task
        self._building: dict[str, asyncio.Task] = {}
        # Background rebuilds of stale slugs
        self._rebuilding: dict[str, asyncio.Task] = {}

    # ─────────────────────── State evaluation ─────────────────────────────

    def is_fresh(self, entry: SnapshotEntry, now: float) -> bool:
        return now - entry.generated_at < self.stale_window

    def may_rebuild(self, entry: SnapshotEntry, now: float) -> bool:
        return entry.retry_at is None or now >= entry.retry_at

    async def state_of(self, slug: str) -> SnapshotState:
        if slug in self._rebuilding or slug in self._building:
            return SnapshotState.REBUILDING
        entry = await self.store.get(slug)
        if entry is None:
            return SnapshotState.UNBUILT
        if self.is_fresh(entry, self.clock()):
            return SnapshotState.FRESH
        return SnapshotState.STALE

    # ─────────────────────── Serving ──────────────────────────────────────

    async def serve(self, slug: str) -> ServeResult:
        """
        Return the snapshot to send for `slug`.
        Raises NotFound / StoreError only when there is no snapshot at all.
        """
        entry = await self.store.get(slug)
        if entry is None:
            snapshot = await self._build_inline(slug)
            return ServeResult(snapshot, SnapshotState.UNBUILT)

        if slug in self._rebuilding:
            return ServeResult(entry.snapshot, SnapshotState.REBUILDING)

        now = self.clock()
        if self.is_fresh(entry, now):
            return ServeResult(entry.snapshot, SnapshotState.FRESH)

        started = False
        if self.may_rebuild(entry, now):
            started = self._start_rebuild(slug, entry, now)
        return ServeResult(entry.snapshot, SnapshotState.STALE, rebuild_started=started)

    async def prerender(self, slugs: Iterable[str]) -> int:
        """Build every slug that has no snapshot yet; returns the number built."""
        built = 0
        for slug in slugs:
            if await self.store.get(slug) is not None:
                continue
            try:
                await self._build(slug, trigger="prerender")
                built += 1
            except (NotFound, StoreError) as exc:
                logger.warning("Pre-render of %s failed: %s", slug, exc)
        logger.info("Pre-rendered %d post pages", built)
        return built

    async def drain(self) -> None:
        """Wait for every in-flight build and rebuild to finish."""
        pending = [*self._building.values(), *self._rebuilding.values()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ─────────────────────── Builds ───────────────────────────────────────

    async def _build(self, slug: str, trigger: str) -> DetailSnapshot:
        with tracer.start_as_current_span("build_snapshot") as span:
            span.set_attribute("post.slug", slug)
            span.set_attribute("build.trigger", trigger)
            try:
                snapshot = await self.renderer.render(slug)
            except NotFound:
                SNAPSHOT_REBUILDS_TOTAL.labels(trigger=trigger, outcome="not_found").inc()
                raise
            except StoreError:
                SNAPSHOT_REBUILDS_TOTAL.labels(trigger=trigger, outcome="error").inc()
                raise
            await self.store.put(slug, SnapshotEntry(snapshot=snapshot))
        SNAPSHOT_REBUILDS_TOTAL.labels(trigger=trigger, outcome="ok").inc()
        return snapshot

    async def _build_inline(self, slug: str) -> DetailSnapshot:
        task = self._building.get(slug)
        if task is None:
            if self.registry is not None and self.registry.is_known(slug) is False:
                logger.info("Slug %s not in last enumeration, building on demand", slug)
            task = asyncio.create_task(self._build(slug, trigger="on_demand"))
            self._building[slug] = task
            task.add_done_callback(lambda t: self._forget(self._building, slug, t))
        # Shielded so one cancelled requester does not abort the shared build
        return await asyncio.shield(task)

    def _start_rebuild(self, slug: str, entry: SnapshotEntry, started_at: float) -> bool:
        if slug in self._rebuilding:
            return False
        task = asyncio.create_task(self._rebuild(slug, entry, started_at))
        self._rebuilding[slug] = task
        task.add_done_callback(lambda t: self._forget(self._rebuilding, slug, t))
        logger.info("Snapshot for %s is stale, rebuilding in background", slug)
        return True

    async def _rebuild(self, slug: str, previous: SnapshotEntry, started_at: float) -> None:
        if not await self.store.acquire_rebuild(slug):
            return
        try:
            # Re-read under the lock: another process may have rebuilt the
            # slug, or recorded a failed attempt, since we saw it stale.
            current = await self.store.get(slug)
            if (
                current is None
                or current.generated_at != previous.generated_at
                or current.retry_at != previous.retry_at
                or self.is_fresh(current, self.clock())
            ):
                logger.debug("Snapshot for %s already replaced, skipping rebuild", slug)
                return
            try:
                await self._build(slug, trigger="background")
            except (NotFound, StoreError) as exc:
                retry_at = started_at + self.stale_window
                logger.warning(
                    "Rebuild of %s failed (%s); serving previous snapshot, next attempt after %.0f",
                    slug,
                    exc,
                    retry_at,
                )
                await self.store.put(slug, current.model_copy(update={"retry_at": retry_at}))
        finally:
            await self.store.release_rebuild(slug)

    @staticmethod
    def _forget(tasks: dict[str, asyncio.Task], slug: str, task: asyncio.Task) -> None:
        if tasks.get(slug) is task:
            del tasks[slug]
