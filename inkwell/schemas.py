"""
Pydantic schemas for content-store documents, page snapshots and the
comment API. Store documents keep Sanity's underscore field names as
aliases so query results validate as-is.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ──────────────────────────── Store documents ─────────────────────────────

class Reference(BaseModel):
    ref: str = Field(..., alias="_ref")

    class Config:
        populate_by_name = True


class ImageRef(BaseModel):
    asset: Optional[Reference] = None

    class Config:
        populate_by_name = True


class Slug(BaseModel):
    current: str


class Author(BaseModel):
    name: str
    image: Optional[ImageRef] = None


class Comment(BaseModel):
    """An approved comment, as surfaced by the detail query."""
    id: str = Field(..., alias="_id")
    name: str
    comment: str
    approved: bool = False
    created_at: Optional[datetime] = Field(None, alias="_createdAt")

    class Config:
        populate_by_name = True


class PostSummary(BaseModel):
    id: str = Field(..., alias="_id")
    title: str
    slug: Slug
    description: Optional[str] = None
    author: Optional[Author] = None
    main_image: Optional[ImageRef] = Field(None, alias="mainImage")

    class Config:
        populate_by_name = True


class PostDetail(PostSummary):
    created_at: Optional[datetime] = Field(None, alias="_createdAt")
    body: list[dict[str, Any]] = []
    # Only ever holds approved comments; the detail query filters them
    comments: list[Comment] = []


class PostPath(BaseModel):
    id: str = Field(..., alias="_id")
    slug: Slug

    class Config:
        populate_by_name = True


# ──────────────────────────── Snapshots ───────────────────────────────────

class ListSnapshot(BaseModel):
    posts: list[PostSummary]
    html: str
    generated_at: float


class DetailSnapshot(BaseModel):
    """A materialised detail page: markup plus the data it was built from."""
    slug: str
    post: PostDetail
    html: str
    generated_at: float

    class Config:
        frozen = True


# ──────────────────────────── Comments API ────────────────────────────────

class CommentCreate(BaseModel):
    """Write-boundary validation for POST /api/createComment."""
    post_id: str = Field(..., alias="_id", min_length=1)
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    comment: str = Field(..., min_length=1)

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class CommentAck(BaseModel):
    message: str
    id: str
