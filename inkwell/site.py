"""
Wiring of the content-site components, built once at startup and shared by
all request handlers through app.state.
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request

from inkwell.clients.sanity_client import ContentStoreClient
from inkwell.comments import CommentSubmission
from inkwell.paths import PathRegistry
from inkwell.regeneration import RegenerationScheduler, SnapshotStore
from inkwell.renderer import DetailRenderer, ListRenderer


@dataclass
class Site:
    store: ContentStoreClient
    registry: PathRegistry
    list_renderer: ListRenderer
    detail_renderer: DetailRenderer
    scheduler: RegenerationScheduler
    comments: CommentSubmission

    @classmethod
    def build(
        cls,
        store: ContentStoreClient,
        snapshots: SnapshotStore,
        stale_window: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> "Site":
        registry = PathRegistry(store)
        detail_renderer = DetailRenderer(store, clock=clock)
        return cls(
            store=store,
            registry=registry,
            list_renderer=ListRenderer(store, clock=clock),
            detail_renderer=detail_renderer,
            scheduler=RegenerationScheduler(
                detail_renderer,
                snapshots,
                stale_window=stale_window,
                clock=clock,
                registry=registry,
            ),
            comments=CommentSubmission(store),
        )


def get_site(request: Request) -> Site:
    """FastAPI dependency returning the site built at startup."""
    site = getattr(request.app.state, "site", None)
    if site is None:
        raise RuntimeError("Site not initialised — app lifespan has not run")
    return site
