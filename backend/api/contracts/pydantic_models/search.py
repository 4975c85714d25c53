"""
Pydantic models for /search.

The search index is an external collaborator; this endpoint only validates
the query and maps hits to the public shape.
"""

from typing import List, Optional

from pydantic import Field

from .base import BaseOutputModel, BaseQueryModel
from .types import PostKind


class SearchQuery(BaseQueryModel):
    q: str = Field(..., min_length=2, max_length=200)
    limit: int = Field(10, ge=1, le=50)
    kind: Optional[PostKind] = None


class SearchHitOut(BaseOutputModel):
    uuid: str
    kind: PostKind
    title: str
    excerpt: str
    score: float


class SearchOut(BaseOutputModel):
    query: str
    hits: List[SearchHitOut]
