"""Shared fixtures: an in-memory stand-in for the Sanity HTTP API and a
controllable clock."""

import asyncio
import json
import os
from datetime import datetime, timezone
from typing import Optional

os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "")
os.environ.setdefault("SANITY_PROJECT_ID", "testproj")
os.environ.setdefault("SANITY_DATASET", "test")
os.environ.setdefault("PRERENDER_ON_STARTUP", "false")

import httpx
import pytest
import pytest_asyncio

from inkwell.clients.sanity_client import (
    ContentStoreClient,
    POST_DETAIL_QUERY,
    POST_PATHS_QUERY,
    POSTS_QUERY,
)

AUTHOR = {
    "name": "Ada Lovelace",
    "image": {"_type": "image", "asset": {"_ref": "image-avatar01-200x200-png", "_type": "reference"}},
}


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSanity:
    """Answers the three site queries and comment mutations like the real API."""

    def __init__(self) -> None:
        self.posts: dict[str, dict] = {}
        self.comments: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.fail_reads = False
        self.fail_writes = False
        # When set, store requests wait until it is released
        self.gate: Optional[asyncio.Event] = None

    # ── Editorial / moderation actions ────────────────────────────────────

    def add_post(self, slug: str, **fields) -> dict:
        doc = {
            "_id": f"post-{slug}",
            "_type": "post",
            "_createdAt": "2024-01-15T09:30:00Z",
            "title": fields.pop("title", slug.replace("-", " ").title()),
            "slug": {"_type": "slug", "current": slug},
            "description": fields.pop("description", f"About {slug}"),
            "mainImage": {"_type": "image", "asset": {"_ref": "image-hero01-1200x800-jpg", "_type": "reference"}},
            "body": fields.pop(
                "body",
                [{"_type": "block", "style": "normal", "markDefs": [],
                  "children": [{"_type": "span", "text": f"Body of {slug}", "marks": []}]}],
            ),
        }
        doc.update(fields)
        self.posts[slug] = doc
        return doc

    def approve(self, comment_id: str) -> None:
        for comment in self.comments:
            if comment["_id"] == comment_id:
                comment["approved"] = True

    # ── Query counters ────────────────────────────────────────────────────

    @property
    def queries(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/data/query/" in r.url.path]

    @property
    def mutations(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/data/mutate/" in r.url.path]

    # ── Projections ───────────────────────────────────────────────────────

    def _summary(self, doc: dict) -> dict:
        return {
            "_id": doc["_id"],
            "title": doc["title"],
            "slug": doc["slug"],
            "author": AUTHOR,
            "description": doc["description"],
            "mainImage": doc["mainImage"],
        }

    def _detail(self, slug: str):
        doc = self.posts.get(slug)
        if doc is None:
            return None
        comments = [
            {k: c[k] for k in ("_id", "_createdAt", "name", "comment", "approved")}
            for c in self.comments
            if c["post"]["_ref"] == doc["_id"] and c["approved"] is True
        ]
        return {
            **self._summary(doc),
            "_createdAt": doc["_createdAt"],
            "comments": comments,
            "body": doc["body"],
        }

    # ── Transport handler ─────────────────────────────────────────────────

    async def async_handler(self, request: httpx.Request) -> httpx.Response:
        if self.gate is not None:
            await self.gate.wait()
        return self.handler(request)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "/data/query/" in request.url.path:
            if self.fail_reads:
                return httpx.Response(503, json={"error": "Service Unavailable"})
            query = request.url.params["query"]
            if query == POSTS_QUERY:
                result = [self._summary(doc) for doc in self.posts.values()]
            elif query == POST_PATHS_QUERY:
                result = [{"_id": doc["_id"], "slug": doc["slug"]} for doc in self.posts.values()]
            elif query == POST_DETAIL_QUERY:
                result = self._detail(json.loads(request.url.params["$slug"]))
            else:
                return httpx.Response(400, json={"error": "unknown query"})
            return httpx.Response(200, json={"ms": 1, "query": query, "result": result})

        if "/data/mutate/" in request.url.path:
            if self.fail_writes:
                return httpx.Response(500, json={"error": "Internal Server Error"})
            document = json.loads(request.content)["mutations"][0]["create"]
            comment_id = f"comment-{len(self.comments) + 1}"
            self.comments.append(
                {
                    **document,
                    "_id": comment_id,
                    "_createdAt": datetime.now(timezone.utc).isoformat(),
                }
            )
            return httpx.Response(
                200,
                json={"transactionId": "tx1", "results": [{"id": comment_id, "operation": "create"}]},
            )

        return httpx.Response(404)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sanity():
    fake = FakeSanity()
    fake.add_post("hello-world", title="Hello World")
    return fake


@pytest_asyncio.fixture
async def store(sanity):
    client = ContentStoreClient(
        project_id="testproj",
        dataset="test",
        token="test-token",
        use_cdn=False,
        timeout=5.0,
    )
    await client.start(transport=httpx.MockTransport(sanity.async_handler))
    yield client
    await client.stop()
