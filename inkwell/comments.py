"""
Comment submission workflow.

  1. Validate — name, email and comment are required. A missing field
     produces a per-field message and no write is issued.
  2. Write    — create the comment in the store with approved = false.
  3. Outcome  — PENDING (acknowledged, awaiting moderation) or FAILED
                (rejected / unreachable; the form stays editable). There is
                no automatic retry.

A pending comment is never shown straight away: detail pages only list
approved comments, and only once the page has been regenerated.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from inkwell.clients.sanity_client import ContentStoreClient
from inkwell.exceptions import CommentValidationError, StoreWriteError
from inkwell.telemetry import COMMENT_SUBMISSIONS_TOTAL

logger = logging.getLogger(__name__)

FORM_FIELDS = ("_id", "name", "email", "comment")

REQUIRED_FIELDS = {
    "name": "The Name Field is required",
    "email": "The Email Field is required",
    "comment": "The Comment Field is required",
}


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    FAILED = "failed"
    INVALID = "invalid"


@dataclass
class SubmissionOutcome:
    status: SubmissionStatus
    values: dict[str, str]
    errors: dict[str, str] = field(default_factory=dict)
    comment_id: Optional[str] = None

    @property
    def submitted(self) -> bool:
        return self.status is SubmissionStatus.PENDING


def clean_form(form: Mapping[str, Any]) -> dict[str, str]:
    values = {}
    for name in FORM_FIELDS:
        value = form.get(name)
        values[name] = value.strip() if isinstance(value, str) else ""
    return values


def validate_comment(values: Mapping[str, str]) -> None:
    """Raise CommentValidationError listing every missing required field."""
    errors = {
        name: message for name, message in REQUIRED_FIELDS.items() if not values.get(name)
    }
    if errors:
        raise CommentValidationError(errors)


class CommentSubmission:
    def __init__(self, store: ContentStoreClient) -> None:
        self.store = store

    async def submit(self, form: Mapping[str, Any]) -> SubmissionOutcome:
        values = clean_form(form)

        try:
            validate_comment(values)
        except CommentValidationError as exc:
            logger.debug("Comment rejected before write: %s", sorted(exc.errors))
            COMMENT_SUBMISSIONS_TOTAL.labels(outcome=SubmissionStatus.INVALID.value).inc()
            return SubmissionOutcome(SubmissionStatus.INVALID, values, errors=exc.errors)

        try:
            ack = await self.store.create_comment(
                post_id=values["_id"],
                name=values["name"],
                email=values["email"],
                comment=values["comment"],
            )
        except StoreWriteError as exc:
            logger.warning("Comment write failed for post %s: %s", values["_id"], exc.message)
            COMMENT_SUBMISSIONS_TOTAL.labels(outcome=SubmissionStatus.FAILED.value).inc()
            return SubmissionOutcome(SubmissionStatus.FAILED, values)

        logger.info("Comment %s submitted for post %s, awaiting moderation", ack["id"], values["_id"])
        COMMENT_SUBMISSIONS_TOTAL.labels(outcome=SubmissionStatus.PENDING.value).inc()
        return SubmissionOutcome(SubmissionStatus.PENDING, values, comment_id=ack["id"])
