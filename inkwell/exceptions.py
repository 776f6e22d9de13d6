"""Exception classes for the content site.

Store failures are split by direction: read failures keep the last good
snapshot in place, write failures are reported back to the comment form.
"""

from typing import Any, Dict, Optional


class InkwellError(Exception):
    """Base exception class for all content-site errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreError(InkwellError):
    """Base exception for content store I/O errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class StoreUnavailable(StoreError):
    """A read query failed, timed out or was rejected by the store."""
    pass


class StoreWriteError(StoreError):
    """A mutation (comment creation) was not acknowledged by the store."""
    pass


class NotFound(InkwellError):
    """No post exists for the requested slug."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"No post found for slug '{slug}'", {"slug": slug})
        self.slug = slug


class CommentValidationError(InkwellError):
    """One or more required comment fields are missing.

    Args:
        errors: Mapping of field name to a human-readable message
    """

    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("Comment validation failed", {"errors": errors})
        self.errors = errors
