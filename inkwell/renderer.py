"""
Page renderers.

  ListRenderer   — all posts, recomputed on every request.
  DetailRenderer — one post by slug; raises NotFound when the store has no
                   such post. The resulting snapshot carries the markup, the
                   post data it was built from and its generation timestamp.

The comment form section of a detail page is re-rendered from snapshot data
when a form is submitted, so that path never reads from the store.
"""
import logging
import time
from functools import partial
from pathlib import Path
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from opentelemetry import trace

from inkwell import portable_text
from inkwell.clients.sanity_client import ContentStoreClient
from inkwell.comments import SubmissionOutcome
from inkwell.config import settings
from inkwell.images import url_for
from inkwell.schemas import DetailSnapshot, ListSnapshot, PostDetail
from inkwell.telemetry import PAGE_RENDER_SECONDS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)
templates.globals["site_title"] = settings.site_title


def render_error_page(status_code: int, title: str, message: str) -> str:
    return templates.get_template("error.html").render(
        status_code=status_code, title=title, message=message
    )


class ListRenderer:
    def __init__(
        self, store: ContentStoreClient, clock: Callable[[], float] = time.time
    ) -> None:
        self.store = store
        self.clock = clock

    async def render(self) -> ListSnapshot:
        with tracer.start_as_current_span("render_list"), PAGE_RENDER_SECONDS.labels(
            page="list"
        ).time():
            posts = await self.store.fetch_posts()
            generated_at = self.clock()
            html = templates.get_template("index.html").render(
                posts=posts,
                generated_at=generated_at,
                image_url=partial(
                    url_for, project_id=self.store.project_id, dataset=self.store.dataset
                ),
            )
        return ListSnapshot(posts=posts, html=html, generated_at=generated_at)


class DetailRenderer:
    def __init__(
        self, store: ContentStoreClient, clock: Callable[[], float] = time.time
    ) -> None:
        self.store = store
        self.clock = clock

    async def render(self, slug: str) -> DetailSnapshot:
        """Build a fresh snapshot for `slug`. Fails fast with NotFound."""
        with tracer.start_as_current_span("render_detail") as span, PAGE_RENDER_SECONDS.labels(
            page="detail"
        ).time():
            span.set_attribute("post.slug", slug)
            post = await self.store.fetch_post(slug)
            generated_at = self.clock()
            html = self.render_page(post, generated_at)
        logger.debug("Rendered %s (%d approved comments)", slug, len(post.comments))
        return DetailSnapshot(slug=slug, post=post, html=html, generated_at=generated_at)

    def render_page(
        self,
        post: PostDetail,
        generated_at: float,
        outcome: Optional[SubmissionOutcome] = None,
    ) -> str:
        return templates.get_template("post.html").render(
            post=post,
            body=portable_text.render(post.body, self.store.project_id, self.store.dataset),
            generated_at=generated_at,
            outcome=outcome,
            image_url=partial(
                url_for, project_id=self.store.project_id, dataset=self.store.dataset
            ),
        )
