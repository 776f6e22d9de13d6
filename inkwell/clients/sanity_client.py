"""
Content store client (Sanity HTTP API).

Reads are GROQ queries sent to the query endpoint:
  GET https://{projectId}.api[cdn].sanity.io/v{apiVersion}/data/query/{dataset}
      ?query=<groq>&$slug="<json>"
  Response: { "ms": ..., "query": ..., "result": <json> }

Writes go to the mutate endpoint with a bearer token:
  POST https://{projectId}.api.sanity.io/v{apiVersion}/data/mutate/{dataset}?returnIds=true
  Body: { "mutations": [ { "create": { ... } } ] }

Comment approval is filtered inside the detail query, so callers only ever
see comments that are allowed to be shown. Any transport failure, timeout
or non-2xx response surfaces as StoreUnavailable (reads) or StoreWriteError
(writes).
"""
import json
import logging
from typing import Any, Optional

import httpx
from opentelemetry import trace
from pydantic import ValidationError

from inkwell.config import settings
from inkwell.exceptions import NotFound, StoreUnavailable, StoreWriteError
from inkwell.schemas import PostDetail, PostPath, PostSummary
from inkwell.telemetry import STORE_QUERIES_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Published documents only: draft ids live under the "drafts." path
_PUBLISHED = '!(_id in path("drafts.**"))'

POSTS_QUERY = f"""
*[_type == "post" && defined(slug.current) && {_PUBLISHED}] | order(_createdAt desc) {{
  _id,
  title,
  slug,
  author -> {{
    name,
    image
  }},
  description,
  mainImage
}}
"""

POST_PATHS_QUERY = f"""
*[_type == "post" && defined(slug.current) && {_PUBLISHED}] {{
  _id,
  slug
}}
"""

POST_DETAIL_QUERY = f"""
*[_type == "post" && slug.current == $slug && {_PUBLISHED}][0] {{
  _id,
  _createdAt,
  title,
  slug,
  author -> {{
    name,
    image
  }},
  'comments': *[
    _type == "comment" &&
    post._ref == ^._id &&
    approved == true
  ] | order(_createdAt asc) {{
    _id,
    _createdAt,
    name,
    comment,
    approved
  }},
  description,
  mainImage,
  body
}}
"""


class ContentStoreClient:
    def __init__(
        self,
        project_id: Optional[str] = None,
        dataset: Optional[str] = None,
        api_version: Optional[str] = None,
        token: Optional[str] = None,
        use_cdn: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.project_id = project_id or settings.sanity_project_id
        self.dataset = dataset or settings.sanity_dataset
        self.api_version = api_version or settings.sanity_api_version
        self.token = settings.sanity_token if token is None else token
        self.use_cdn = settings.sanity_use_cdn if use_cdn is None else use_cdn
        self.timeout = timeout or settings.store_timeout
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def query_url(self) -> str:
        api = "apicdn" if self.use_cdn else "api"
        return (
            f"https://{self.project_id}.{api}.sanity.io"
            f"/v{self.api_version}/data/query/{self.dataset}"
        )

    @property
    def mutate_url(self) -> str:
        return (
            f"https://{self.project_id}.api.sanity.io"
            f"/v{self.api_version}/data/mutate/{self.dataset}"
        )

    async def start(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._http = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        logger.info(
            "Content store client ready (project=%s, dataset=%s, cdn=%s)",
            self.project_id,
            self.dataset,
            self.use_cdn,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("Content store client not started — call start() first")
        return self._http

    # ─────────────────────── Raw query / mutate ───────────────────────────

    async def query(self, groq: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Run a read-only GROQ query and return its `result` member.
        Params are sent as `$name` arguments with JSON-encoded values.
        """
        qs = {"query": groq}
        for name, value in (params or {}).items():
            qs[f"${name}"] = json.dumps(value)

        with tracer.start_as_current_span("store.query") as span:
            span.set_attribute("store.dataset", self.dataset)
            try:
                resp = await self._client().get(self.query_url, params=qs)
                resp.raise_for_status()
                payload = resp.json()
            except httpx.HTTPStatusError as exc:
                STORE_QUERIES_TOTAL.labels(kind="query", outcome="error").inc()
                raise StoreUnavailable(
                    f"Store query rejected: {exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                STORE_QUERIES_TOTAL.labels(kind="query", outcome="error").inc()
                raise StoreUnavailable(f"Store unreachable: {exc}") from exc
            except ValueError as exc:
                STORE_QUERIES_TOTAL.labels(kind="query", outcome="error").inc()
                raise StoreUnavailable("Store returned a non-JSON response") from exc

            if not isinstance(payload, dict):
                STORE_QUERIES_TOTAL.labels(kind="query", outcome="error").inc()
                raise StoreUnavailable("Store returned an unexpected response body")

        STORE_QUERIES_TOTAL.labels(kind="query", outcome="ok").inc()
        return payload.get("result")

    async def create_comment(
        self, post_id: str, name: str, email: str, comment: str
    ) -> dict[str, str]:
        """
        Insert an unapproved comment referencing `post_id`.
        Returns {"id": <document id>}. The comment stays invisible until a
        moderator sets `approved` to true in the store.
        """
        fields = {"post_id": post_id, "name": name, "email": email, "comment": comment}
        missing = [k for k, v in fields.items() if not v]
        if missing:
            raise StoreWriteError(f"Missing comment field(s): {', '.join(missing)}")
        if not self.token:
            raise StoreWriteError("No write token configured for the content store")

        document = {
            "_type": "comment",
            "post": {"_type": "reference", "_ref": post_id},
            "name": name,
            "email": email,
            "comment": comment,
            "approved": False,
        }

        with tracer.start_as_current_span("store.create_comment") as span:
            span.set_attribute("comment.post_id", post_id)
            try:
                resp = await self._client().post(
                    self.mutate_url,
                    params={"returnIds": "true"},
                    headers={"Authorization": f"Bearer {self.token}"},
                    json={"mutations": [{"create": document}]},
                )
                resp.raise_for_status()
                results = resp.json().get("results") or []
                comment_id = results[0]["id"]
            except httpx.HTTPStatusError as exc:
                STORE_QUERIES_TOTAL.labels(kind="mutate", outcome="error").inc()
                raise StoreWriteError(
                    f"Comment write rejected: {exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                STORE_QUERIES_TOTAL.labels(kind="mutate", outcome="error").inc()
                raise StoreWriteError(f"Store unreachable: {exc}") from exc
            except (ValueError, LookupError, TypeError) as exc:
                STORE_QUERIES_TOTAL.labels(kind="mutate", outcome="error").inc()
                raise StoreWriteError("Store did not acknowledge the comment") from exc

        STORE_QUERIES_TOTAL.labels(kind="mutate", outcome="ok").inc()
        return {"id": comment_id}

    # ─────────────────────── Typed queries ────────────────────────────────

    async def fetch_posts(self) -> list[PostSummary]:
        """All published posts with their author, no comments."""
        rows = await self.query(POSTS_QUERY)
        try:
            return [PostSummary.model_validate(row) for row in rows or []]
        except ValidationError as exc:
            raise StoreUnavailable("Unexpected post list shape") from exc

    async def fetch_post_paths(self) -> list[PostPath]:
        rows = await self.query(POST_PATHS_QUERY)
        try:
            return [PostPath.model_validate(row) for row in rows or []]
        except ValidationError as exc:
            raise StoreUnavailable("Unexpected post path shape") from exc

    async def fetch_post(self, slug: str) -> PostDetail:
        """One post by slug with approved comments only; NotFound if absent."""
        row = await self.query(POST_DETAIL_QUERY, {"slug": slug})
        if not row:
            raise NotFound(slug)
        try:
            return PostDetail.model_validate(row)
        except ValidationError as exc:
            raise StoreUnavailable(f"Unexpected shape for post '{slug}'") from exc
