"""
Content site — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Start the content store HTTP client
  3. Choose the snapshot backend (in-process dict or shared Redis)
  4. Enumerate post paths and pre-render every detail page
  5. Expose Prometheus /metrics endpoint

Shutdown waits for in-flight page rebuilds before closing connections.
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse
from prometheus_client import make_asgi_app

from inkwell.config import settings
from inkwell.exceptions import NotFound, StoreUnavailable
from inkwell.telemetry import setup_tracing, instrument_app
from inkwell.clients.redis_client import close_redis, init_redis
from inkwell.clients.sanity_client import ContentStoreClient
from inkwell.renderer import render_error_page
from inkwell.routers import comments, pages
from inkwell.site import Site
from inkwell.snapshots import MemorySnapshotStore, RedisSnapshotStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


async def _snapshot_store():
    if settings.snapshot_backend == "redis":
        redis = await init_redis()
        return RedisSnapshotStore(
            redis,
            prefix=settings.redis_snapshot_prefix,
            lock_ttl=settings.rebuild_lock_ttl,
        )
    return MemorySnapshotStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the store client and snapshot cache."""
    logger.info("Starting content site (env=%s)", settings.environment)

    store = ContentStoreClient()
    await store.start()
    site = Site.build(store, await _snapshot_store())
    app.state.site = site

    if settings.prerender_on_startup:
        try:
            slugs = await site.registry.refresh()
            await site.scheduler.prerender(slugs)
        except StoreUnavailable as exc:
            # Pages are still built on first request
            logger.warning("Path enumeration failed: %s — skipping pre-render", exc)

    logger.info("Content site ready (snapshot backend=%s)", settings.snapshot_backend)
    yield

    logger.info("Shutting down...")
    await site.scheduler.drain()
    await store.stop()
    await close_redis()


app = FastAPI(
    title="Content Site",
    description=(
        "Article list and detail pages with incremental regeneration, "
        "plus moderated reader comments."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(pages.router, tags=["Pages"])
app.include_router(comments.router, prefix="/api", tags=["Comments"])


# ── Error pages ────────────────────────────────────────────────────────────
@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    # Never cached: a post published later is found on the next request
    return HTMLResponse(
        render_error_page(404, "Post not found", f"There is no post at /post/{exc.slug}."),
        status_code=status.HTTP_404_NOT_FOUND,
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.warning("Store unavailable while serving %s: %s", request.url.path, exc.message)
    return HTMLResponse(
        render_error_page(503, "Temporarily unavailable", "Please try again shortly."),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
