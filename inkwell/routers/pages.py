"""
Page endpoints:
  GET  /                   — list of posts, rendered on every request
  GET  /post/{slug}        — detail page, served through the regeneration
                             scheduler (404 if the store has no such post)
  POST /post/{slug}/comment — comment form; re-renders the page with the
                             submission outcome
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse
from opentelemetry import trace

from inkwell.comments import SubmissionStatus
from inkwell.regeneration import ServeResult
from inkwell.site import Site, get_site
from inkwell.telemetry import PAGE_REQUESTS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)

_OUTCOME_STATUS = {
    SubmissionStatus.PENDING: status.HTTP_200_OK,
    SubmissionStatus.INVALID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SubmissionStatus.FAILED: status.HTTP_502_BAD_GATEWAY,
}


def _snapshot_headers(result: ServeResult) -> dict[str, str]:
    return {
        "X-Generated-At": f"{result.snapshot.generated_at:.3f}",
        "X-Snapshot-State": result.state.value,
    }


@router.get("/", response_class=HTMLResponse)
async def list_page(site: Site = Depends(get_site)):
    snapshot = await site.list_renderer.render()
    PAGE_REQUESTS_TOTAL.labels(page="list", state="RECOMPUTED").inc()
    return HTMLResponse(
        snapshot.html, headers={"X-Generated-At": f"{snapshot.generated_at:.3f}"}
    )


@router.get("/post/{slug}", response_class=HTMLResponse)
async def post_page(slug: str, site: Site = Depends(get_site)):
    with tracer.start_as_current_span("serve_post") as span:
        span.set_attribute("post.slug", slug)
        result = await site.scheduler.serve(slug)
        span.set_attribute("snapshot.state", result.state.value)

    PAGE_REQUESTS_TOTAL.labels(page="detail", state=result.state.value).inc()
    return HTMLResponse(result.snapshot.html, headers=_snapshot_headers(result))


@router.post("/post/{slug}/comment", response_class=HTMLResponse)
async def submit_comment_form(slug: str, request: Request, site: Site = Depends(get_site)):
    """
    Server-side equivalent of the in-page comment form. The page is rebuilt
    from the snapshot's data, never re-fetched, so a pending comment does not
    show up here — it appears only after approval and regeneration.
    """
    form = dict(await request.form())
    result = await site.scheduler.serve(slug)
    # The comment belongs to the post this page was built from
    form["_id"] = result.snapshot.post.id
    outcome = await site.comments.submit(form)

    html = site.detail_renderer.render_page(
        result.snapshot.post, result.snapshot.generated_at, outcome
    )
    return HTMLResponse(
        html,
        status_code=_OUTCOME_STATUS[outcome.status],
        headers=_snapshot_headers(result),
    )
