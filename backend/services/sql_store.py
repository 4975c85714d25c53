"""
SQLAlchemy-backed UserStore / PostStore.

Sessions are blocking; every public coroutine runs its unit of work in a
worker thread via asyncio.to_thread so the event loop is never blocked.
Each unit of work opens and closes its own session.
"""

import asyncio
import logging
import uuid as uuid_lib
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from models import Base, Post, User
from services.auth_tokens import hash_password
from services.stores import DuplicateEmailError, PostRecord, UserRecord, utcnow

logger = logging.getLogger(__name__)


def create_schema(engine: Engine) -> None:
    """Create missing tables (local development and tests)."""
    Base.metadata.create_all(engine)
    logger.info("db_schema_ready tables=%s", ",".join(sorted(Base.metadata.tables)))


def _join_tags(tags) -> str:
    return ",".join(tags or ())


def _split_tags(raw: Optional[str]) -> Tuple[str, ...]:
    return tuple(tag for tag in (raw or "").split(",") if tag)


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        display_name=row.display_name,
        active=row.active,
        created_at=row.created_at,
    )


def _post_record(row: Post) -> PostRecord:
    return PostRecord(
        id=row.id,
        uuid=row.uuid,
        kind=row.kind,
        title=row.title,
        excerpt=row.excerpt,
        status=row.status,
        author_id=row.author_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        link=row.link,
        credits=row.credits,
        type=row.type,
        main_image_uuid=row.main_image_uuid,
        main_image_caption=row.main_image_caption,
        body=row.body,
        canonical_url=row.canonical_url,
        tags=_split_tags(row.tags),
        author_name=row.author_name,
        published_at=row.published_at,
        publish_at=row.publish_at,
        search_indexed_at=row.search_indexed_at,
    )


class _SqlStore:
    def __init__(self, engine: Engine):
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    async def _run(self, work, *args):
        def unit() -> Any:
            with self._sessions() as session:
                return work(session, *args)
        return await asyncio.to_thread(unit)


class SqlUserStore(_SqlStore):
    async def get(self, user_id: int) -> Optional[UserRecord]:
        def work(session: Session):
            row = session.get(User, user_id)
            return _user_record(row) if row else None
        return await self._run(work)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        def work(session: Session):
            row = session.scalar(select(User).where(User.email == email.strip().lower()))
            return _user_record(row) if row else None
        return await self._run(work)

    async def add(self, email: str, password: str, role: str,
                  display_name: Optional[str] = None) -> UserRecord:
        def work(session: Session):
            row = User(
                email=email.strip().lower(),
                password_hash=hash_password(password),
                role=role,
                display_name=display_name,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError(f"User with email {row.email} already exists") from exc
            return _user_record(row)
        return await self._run(work)


class SqlPostStore(_SqlStore):
    async def create(self, fields: Dict[str, Any]) -> PostRecord:
        def work(session: Session):
            values = dict(fields)
            values["tags"] = _join_tags(values.get("tags"))
            now = utcnow()
            row = Post(uuid=str(uuid_lib.uuid4()), created_at=now, updated_at=now, **values)
            session.add(row)
            session.commit()
            return _post_record(row)
        return await self._run(work)

    async def get(self, uuid: str) -> Optional[PostRecord]:
        def work(session: Session):
            row = session.scalar(select(Post).where(Post.uuid == uuid))
            return _post_record(row) if row else None
        return await self._run(work)

    async def list(self, page: int, limit: int, kind: Optional[str] = None,
                   status: Optional[str] = None, tags: Optional[List[str]] = None) -> Tuple[List[PostRecord], int]:
        def work(session: Session):
            conditions = []
            if kind is not None:
                conditions.append(Post.kind == kind)
            if status is not None:
                conditions.append(Post.status == status)
            if tags:
                # Tags are stored comma-joined; match whole entries only
                padded = "," + Post.tags + ","
                conditions.append(or_(*[padded.contains(f",{tag},") for tag in tags]))

            total = session.scalar(select(func.count()).select_from(Post).where(*conditions))
            rows = session.scalars(
                select(Post)
                .where(*conditions)
                .order_by(func.coalesce(Post.published_at, Post.created_at).desc(), Post.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
            return [_post_record(row) for row in rows], int(total or 0)
        return await self._run(work)

    async def update(self, uuid: str, changes: Dict[str, Any]) -> Optional[PostRecord]:
        def work(session: Session):
            row = session.scalar(select(Post).where(Post.uuid == uuid))
            if row is None:
                return None
            for name, value in changes.items():
                setattr(row, name, _join_tags(value) if name == "tags" else value)
            row.updated_at = utcnow()
            session.commit()
            return _post_record(row)
        return await self._run(work)

    async def delete(self, uuid: str) -> bool:
        def work(session: Session):
            row = session.scalar(select(Post).where(Post.uuid == uuid))
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True
        return await self._run(work)
