"""
Pydantic contract models.

Each model is both the runtime parser (via Procedure.with_body_validation /
with_query_validation) and the declared client shape (via the contract
registry), so the two cannot drift.

Usage:
    from api.contracts.pydantic_models import GalleryPostBody

    create_gallery = (
        admin
        .with_body_validation(GalleryPostBody)
        .finalize("POST", "/gallery", handler, output=PostOut)
    )
"""

from .base import BaseBodyModel, BaseOutputModel, BaseQueryModel
from .auth import LoginBody, LoginOut, LogoutOut, UserOut
from .posts import (
    ArticlePostBody,
    DeletedOut,
    GalleryPostBody,
    PostListOut,
    PostListQuery,
    PostOut,
    PostPatchBody,
    ScheduleOut,
    SchedulePostBody,
)
from .search import SearchHitOut, SearchOut, SearchQuery

__all__ = [
    'BaseBodyModel',
    'BaseOutputModel',
    'BaseQueryModel',
    'LoginBody',
    'LoginOut',
    'LogoutOut',
    'UserOut',
    'ArticlePostBody',
    'DeletedOut',
    'GalleryPostBody',
    'PostListOut',
    'PostListQuery',
    'PostOut',
    'PostPatchBody',
    'ScheduleOut',
    'SchedulePostBody',
    'SearchHitOut',
    'SearchOut',
    'SearchQuery',
]
