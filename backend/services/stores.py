"""
Storage interfaces and in-memory reference implementations.

Relational storage is an external collaborator: handlers only depend on the
UserStore / PostStore protocols below. The in-memory stores back local
development and tests; services/sql_store.py provides the SQLAlchemy-backed
implementations.

Each store owns its own synchronisation (a threading.Lock, since async views
may run on different event loops in different threads); the
procedure framework never shares mutable state across requests.
"""

import itertools
import threading
import uuid as uuid_lib
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from api.procedures.access import Principal
from services.auth_tokens import hash_password


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserRecord:
    id: int
    email: str
    password_hash: str
    role: str
    display_name: Optional[str] = None
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            email=self.email,
            role=self.role,
            display_name=self.display_name,
            active=self.active,
        )


@dataclass(frozen=True)
class PostRecord:
    """A stored post, including internal fields that are never serialized to callers."""
    id: int
    uuid: str
    kind: str
    title: str
    excerpt: str
    status: str
    author_id: int
    created_at: datetime
    updated_at: datetime
    link: Optional[str] = None
    credits: Optional[str] = None
    type: Optional[str] = None
    main_image_uuid: Optional[str] = None
    main_image_caption: Optional[str] = None
    body: Optional[str] = None
    canonical_url: Optional[str] = None
    tags: Tuple[str, ...] = ()
    author_name: Optional[str] = None
    published_at: Optional[datetime] = None
    publish_at: Optional[datetime] = None
    search_indexed_at: Optional[datetime] = None


class UserStore(Protocol):
    async def get(self, user_id: int) -> Optional[UserRecord]: ...

    async def find_by_email(self, email: str) -> Optional[UserRecord]: ...

    async def add(self, email: str, password: str, role: str,
                  display_name: Optional[str] = None) -> UserRecord: ...


class PostStore(Protocol):
    async def create(self, fields: Dict[str, Any]) -> PostRecord: ...

    async def get(self, uuid: str) -> Optional[PostRecord]: ...

    async def list(self, page: int, limit: int, kind: Optional[str] = None,
                   status: Optional[str] = None, tags: Optional[List[str]] = None) -> Tuple[List[PostRecord], int]: ...

    async def update(self, uuid: str, changes: Dict[str, Any]) -> Optional[PostRecord]: ...

    async def delete(self, uuid: str) -> bool: ...


class DuplicateEmailError(ValueError):
    """Raised when adding a user whose email already exists."""


class InMemoryUserStore:
    def __init__(self):
        self._users: Dict[int, UserRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    async def get(self, user_id: int) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            return self._find(email.strip().lower())

    def _find(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def add(self, email: str, password: str, role: str,
                  display_name: Optional[str] = None) -> UserRecord:
        email = email.strip().lower()
        password_hash = hash_password(password)
        with self._lock:
            if self._find(email) is not None:
                raise DuplicateEmailError(f"User with email {email} already exists")
            record = UserRecord(
                id=next(self._ids),
                email=email,
                password_hash=password_hash,
                role=role,
                display_name=display_name,
            )
            self._users[record.id] = record
            return record


class InMemoryPostStore:
    def __init__(self):
        self._posts: Dict[str, PostRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._posts)

    async def create(self, fields: Dict[str, Any]) -> PostRecord:
        now = utcnow()
        values = dict(fields)
        values["tags"] = tuple(values.get("tags") or ())
        with self._lock:
            record = PostRecord(
                id=next(self._ids),
                uuid=str(uuid_lib.uuid4()),
                created_at=now,
                updated_at=now,
                **values,
            )
            self._posts[record.uuid] = record
            return record

    async def get(self, uuid: str) -> Optional[PostRecord]:
        return self._posts.get(uuid)

    async def list(self, page: int, limit: int, kind: Optional[str] = None,
                   status: Optional[str] = None, tags: Optional[List[str]] = None) -> Tuple[List[PostRecord], int]:
        with self._lock:
            posts = list(self._posts.values())
        matches = [
            post for post in posts
            if (kind is None or post.kind == kind)
            and (status is None or post.status == status)
            and (not tags or set(tags) & set(post.tags))
        ]
        matches.sort(key=lambda p: (p.published_at or p.created_at, p.id), reverse=True)
        start = (page - 1) * limit
        return matches[start:start + limit], len(matches)

    async def update(self, uuid: str, changes: Dict[str, Any]) -> Optional[PostRecord]:
        with self._lock:
            current = self._posts.get(uuid)
            if current is None:
                return None
            values = dict(changes)
            if "tags" in values:
                values["tags"] = tuple(values["tags"] or ())
            updated = replace(current, updated_at=utcnow(), **values)
            self._posts[uuid] = updated
            return updated

    async def delete(self, uuid: str) -> bool:
        with self._lock:
            return self._posts.pop(uuid, None) is not None
