"""SQLAlchemy models for the site index."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


SCHEMA_VERSION = "1"


class IndexedSite(Base):
    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(primary_key=True)
    filename: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    filepath: Mapped[str] = mapped_column(Text(), nullable=False)
    primary_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    target_url: Mapped[str | None] = mapped_column(Text())
    tls_mode: Mapped[str] = mapped_column(String(255), default="auto")
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)
    basic_auth_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    content_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    indexed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    domains: Mapped[list[SiteDomain]] = relationship(
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="SiteDomain.domain_index",
    )
    tags: Mapped[list[SiteTag]] = relationship(
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="SiteTag.tag",
    )


class SiteDomain(Base):
    __tablename__ = "site_domains"

    id: Mapped[int] = mapped_column(primary_key=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), index=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    domain_index: Mapped[int] = mapped_column(Integer, nullable=False)

    site: Mapped[IndexedSite] = relationship(back_populates="domains")


class SiteTag(Base):
    __tablename__ = "site_tags"

    id: Mapped[int] = mapped_column(primary_key=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), index=True)
    tag: Mapped[str] = mapped_column(String(128), nullable=False)

    site: Mapped[IndexedSite] = relationship(back_populates="tags")


class Meta(Base):
    __tablename__ = "meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


def to_dict(instance: Base) -> dict[str, Any]:
    """Return a dictionary of column values for debugging."""
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}
