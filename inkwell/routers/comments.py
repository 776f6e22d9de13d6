"""
Comment API:
  POST /api/createComment — body {_id, name, email, comment}

Required fields are checked by the CommentCreate body: a blank or missing
field is rejected with 422 before any write is issued. A successful write only means the comment is stored,
unapproved; it appears on the post once moderated and regenerated.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from opentelemetry import trace

from inkwell.comments import SubmissionStatus
from inkwell.schemas import CommentAck, CommentCreate
from inkwell.site import Site, get_site

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("/createComment", response_model=CommentAck)
async def create_comment(body: CommentCreate, site: Site = Depends(get_site)):
    with tracer.start_as_current_span("create_comment") as span:
        span.set_attribute("comment.post_id", body.post_id)
        outcome = await site.comments.submit(body.model_dump(by_alias=True))

    if outcome.status is SubmissionStatus.FAILED:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Couldn't submit comment"},
        )
    return CommentAck(message="Comment submitted", id=outcome.comment_id)
