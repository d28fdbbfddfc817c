"""SQLAlchemy ORM models for the ByteLink store.

This module defines the database schema using SQLAlchemy declarative models
with the uniqueness constraints the allocator relies on.

Data Model Layout
=================
::
    links table
    ├─ id (VARCHAR(32) PRIMARY KEY)
    ├─ short_code (VARCHAR(20) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    ├─ short_url (TEXT NOT NULL)
    ├─ clicks (INTEGER DEFAULT 0)
    ├─ qr_code (TEXT NULL)
    ├─ analytics (JSON list of click events, append-only)
    ├─ is_active (BOOLEAN DEFAULT TRUE, INDEXED)
    ├─ created_at (TIMESTAMPTZ, INDEXED)
    └─ updated_at (TIMESTAMPTZ)

    short_code_reservations table
    ├─ code (VARCHAR(20) PRIMARY KEY)
    └─ reserved_at (TIMESTAMPTZ)

How to Use
===========
**Step 1 - Reserve a code (atomic insert, PK violation means taken)**::
    session.add(ShortCodeReservation(code="promo1"))
    await session.commit()

**Step 2 - Query links**::
    result = await session.execute(select(Link).where(Link.short_code == "promo1"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- Reservation rows are never deleted, so soft-deleted and renamed links keep their codes.
- analytics is embedded in the row because every read aggregates the whole stream.
- clicks and analytics are only written together, inside one transaction.

Classes:
    Link:  A shortened link with its embedded click stream.
    ShortCodeReservation:  Every short code ever handed out.
"""

import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bytelink.database import Base

__all__ = ["Link", "ShortCodeReservation"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    short_code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_url: Mapped[str] = mapped_column(Text, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    analytics: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, short_code='{self.short_code}', clicks={self.clicks})>"


class ShortCodeReservation(Base):
    __tablename__ = "short_code_reservations"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    reserved_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortCodeReservation(code='{self.code}')>"
