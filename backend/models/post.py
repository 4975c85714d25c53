"""
Post Model - gallery and article posts.

`kind` discriminates the two post families; gallery-only columns (link,
credits, type, main_image_caption) and article-only columns (body,
canonical_url) share one table.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Post(Base):
    __tablename__ = 'posts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    excerpt: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='draft', index=True)
    author_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    author_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    link: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    credits: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    main_image_uuid: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    main_image_caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    canonical_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    # Comma-joined slugs
    tags: Mapped[str] = mapped_column(Text, nullable=False, default='')

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    publish_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    search_indexed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f'<Post {self.uuid} kind={self.kind} status={self.status}>'
