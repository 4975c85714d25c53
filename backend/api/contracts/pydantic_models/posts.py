"""
Pydantic models for /posts endpoints.

Endpoints:
- GET /posts - List posts (query: page, limit, kind, status, tag)
- GET /posts/<uuid> - Single post
- POST /posts/gallery - Create gallery post (admin)
- POST /posts/article - Create article post (admin, editor)
- PATCH /posts/<uuid> - Partial update (admin, editor)
- DELETE /posts/<uuid> - Delete post (admin)
- POST /posts/<uuid>/schedule - Schedule timed publication (admin, editor)
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, HttpUrl, field_validator

from .base import BaseBodyModel, BaseOutputModel, BaseQueryModel
from .types import CommaList, GalleryType, PostKind, PostStatus, Slug


class GalleryPostBody(BaseBodyModel):
    """Body for POST /posts/gallery."""
    title: str = Field(..., min_length=1, max_length=200)
    excerpt: str = Field(..., min_length=1, max_length=500)
    credits: str = Field(..., min_length=1, max_length=200)
    link: str = Field(..., min_length=1, max_length=2048, description="Canonical link or slug")
    type: GalleryType = Field(..., description="Gallery media type")
    main_image_uuid: str = Field(..., min_length=1, max_length=64)
    main_image_caption: str = Field(..., min_length=1, max_length=500)
    tags: List[Slug] = Field(default_factory=list, max_length=20)


class ArticlePostBody(BaseBodyModel):
    """Body for POST /posts/article."""
    title: str = Field(..., min_length=1, max_length=200)
    excerpt: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    canonical_url: Optional[HttpUrl] = None
    main_image_uuid: Optional[str] = Field(None, max_length=64)
    tags: List[Slug] = Field(default_factory=list, max_length=20)
    publish: bool = Field(False, description="Publish immediately instead of saving a draft")


class PostPatchBody(BaseBodyModel):
    """Body for PATCH /posts/<uuid>; only supplied fields are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=500)
    body: Optional[str] = Field(None, min_length=1)
    credits: Optional[str] = Field(None, min_length=1, max_length=200)
    main_image_caption: Optional[str] = Field(None, min_length=1, max_length=500)
    tags: Optional[List[Slug]] = Field(None, max_length=20)
    status: Optional[Literal['draft', 'published']] = Field(None, description="Scheduling goes through /schedule")

    @field_validator('title', 'excerpt', 'body', 'credits', 'main_image_caption', 'status', mode='before')
    @classmethod
    def reject_null(cls, v):
        """Omit a field to leave it unchanged; these columns cannot be cleared."""
        if v is None:
            raise ValueError("May be omitted but not null")
        return v


class SchedulePostBody(BaseBodyModel):
    """Body for POST /posts/<uuid>/schedule."""
    publish_at: datetime = Field(..., description="ISO-8601 timestamp; naive values are treated as UTC")


class PostListQuery(BaseQueryModel):
    """Query params for GET /posts."""
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    kind: Optional[PostKind] = None
    status: PostStatus = 'published'
    tag: CommaList = None


class PostOut(BaseOutputModel):
    """Public (cleansed) shape of a post. Internal fields (author id, index state) are never exposed."""
    uuid: str
    kind: PostKind
    title: str
    excerpt: str
    status: PostStatus
    link: Optional[str] = None
    credits: Optional[str] = None
    type: Optional[GalleryType] = None
    main_image_uuid: Optional[str] = None
    main_image_caption: Optional[str] = None
    body: Optional[str] = None
    canonical_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    author_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None
    publish_at: Optional[datetime] = None


class PostListOut(BaseOutputModel):
    items: List[PostOut]
    page: int
    limit: int
    total: int


class ScheduleOut(BaseOutputModel):
    uuid: str
    status: PostStatus
    publish_at: datetime
    job_id: str


class DeletedOut(BaseOutputModel):
    uuid: str
    deleted: bool
