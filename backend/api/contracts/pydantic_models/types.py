"""
Shared Pydantic types and validators for contract models.

- CommaList: "a,b,c" / ["a", "b,c"] -> ["a", "b", "c"]
- Slug: lowercase, hyphenated tag/section identifiers
- Role: principal roles accepted by role guards
"""

from typing import Annotated, Any, List, Literal, Optional

from pydantic import BeforeValidator, Field


def split_comma_list(v: Any) -> Optional[List[str]]:
    """
    Convert comma-separated string (or list of them) to a flat list.

    Examples:
        "a,b,c" -> ["a", "b", "c"]
        ["a", "b,c"] -> ["a", "b", "c"]
        None -> None
        "" -> None
    """
    if v is None or v == '':
        return None
    if isinstance(v, str):
        v = [v]
    if isinstance(v, (list, tuple)):
        items = []
        for item in v:
            items.extend(part.strip() for part in str(item).split(',') if part.strip())
        return items or None
    return [str(v)]


def normalize_slug(v: Any) -> Any:
    """'Breaking News ' -> 'breaking-news'"""
    if isinstance(v, str):
        return '-'.join(v.strip().lower().split())
    return v


CommaList = Annotated[Optional[List[str]], BeforeValidator(split_comma_list)]

Slug = Annotated[
    str,
    BeforeValidator(normalize_slug),
    Field(min_length=1, max_length=64, pattern=r'^[a-z0-9][a-z0-9-]*$'),
]

Role = Literal['admin', 'editor', 'writer', 'reader']

PostKind = Literal['gallery', 'article']

PostStatus = Literal['draft', 'scheduled', 'published']

GalleryType = Literal['photo', 'video', 'illustration', 'graphic']
