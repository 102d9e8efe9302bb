"""
Data models — pages, assets, posts
SQLAlchemy (SQLite) + Pydantic v2
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import sqlalchemy as sa
from pydantic import BaseModel, Field
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .tree import BlocksDocument


# ── ORM ────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


class PageDB(Base):
    __tablename__ = "pages"
    page_id:    Mapped[str]           = mapped_column(sa.String, primary_key=True, default=lambda: str(uuid.uuid4()))
    slug:       Mapped[str]           = mapped_column(sa.String, unique=True, nullable=False, index=True)
    title:      Mapped[str]           = mapped_column(sa.String, default="")
    content:    Mapped[str]           = mapped_column(sa.Text, default='{"_tree": [], "_values": {}}')
    created_at: Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AssetDB(Base):
    __tablename__ = "assets"
    id:       Mapped[str]           = mapped_column(sa.String, primary_key=True, default=lambda: str(uuid.uuid4()))
    filename: Mapped[str]           = mapped_column(sa.String, nullable=False)
    url:      Mapped[str]           = mapped_column(sa.String, nullable=False)
    alt:      Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    mime:     Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "filename": self.filename, "url": self.url, "alt": self.alt, "mime": self.mime}


class PostDB(Base):
    __tablename__ = "posts"
    id:           Mapped[str]                = mapped_column(sa.String, primary_key=True, default=lambda: str(uuid.uuid4()))
    slug:         Mapped[str]                = mapped_column(sa.String, unique=True, nullable=False)
    title:        Mapped[str]                = mapped_column(sa.String, nullable=False)
    excerpt:      Mapped[Optional[str]]      = mapped_column(sa.Text, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":           self.id,
            "slug":         self.slug,
            "title":        self.title,
            "excerpt":      self.excerpt,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }


# ── PYDANTIC SCHEMAS ────────────────────────────────────────────────────

class PageSaveInput(BaseModel):
    title:   str            = ""
    content: BlocksDocument = Field(default_factory=BlocksDocument)
