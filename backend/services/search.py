"""
Search index interface.

The full-text index and its periodic sync are external collaborators; the
API only needs `index`, `remove` and `search`. InMemorySearchIndex is a
term-overlap scorer used for local development and tests.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from services.stores import PostRecord

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class SearchHit:
    uuid: str
    kind: str
    title: str
    excerpt: str
    score: float


class SearchIndex(Protocol):
    async def index(self, post: PostRecord) -> None: ...

    async def remove(self, uuid: str) -> None: ...

    async def search(self, query: str, limit: int = 10, kind: Optional[str] = None) -> List[SearchHit]: ...


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


class InMemorySearchIndex:
    """Only published posts are searchable."""

    def __init__(self):
        self._docs: Dict[str, PostRecord] = {}
        self._terms: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    async def index(self, post: PostRecord) -> None:
        with self._lock:
            if post.status != "published":
                self._docs.pop(post.uuid, None)
                self._terms.pop(post.uuid, None)
                return
            self._docs[post.uuid] = post
            self._terms[post.uuid] = tokenize(" ".join(
                part for part in (post.title, post.excerpt, post.body, " ".join(post.tags)) if part
            ))

    async def remove(self, uuid: str) -> None:
        with self._lock:
            self._docs.pop(uuid, None)
            self._terms.pop(uuid, None)

    async def search(self, query: str, limit: int = 10, kind: Optional[str] = None) -> List[SearchHit]:
        wanted = set(tokenize(query))
        if not wanted:
            return []

        with self._lock:
            entries = [(self._docs[uuid], terms) for uuid, terms in self._terms.items()]

        hits = []
        for post, terms in entries:
            if kind is not None and post.kind != kind:
                continue
            matched = sum(1 for term in terms if term in wanted)
            if not matched:
                continue
            title_bonus = sum(1 for term in tokenize(post.title) if term in wanted)
            score = round(matched / len(terms) + title_bonus, 4)
            hits.append(SearchHit(uuid=post.uuid, kind=post.kind, title=post.title, excerpt=post.excerpt, score=score))

        hits.sort(key=lambda h: (-h.score, h.title))
        return hits[:limit]
