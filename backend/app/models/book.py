"""Book model: the persisted catalog item.

``isbn`` is stored in canonical form (whitespace and hyphens removed) and is
unique; the constraint backs up the evaluator's advisory duplicate check
when two creations race.

``title_key`` and ``author_key`` hold Python-lowercased copies of title and
author for the duplicate title/author lookup. SQLite's ``lower()`` only folds
ASCII, so the comparison runs against these columns instead.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base


def _lowered(column: str):
    """Insert default deriving a lookup key from ``column``."""

    def default(context) -> str:
        return (context.get_current_parameters()[column] or "").lower()

    return default


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (Index("ix_books_title_author_key", "title_key", "author_key"),)

    # uuid4 hex, generated by the application on creation
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    title: Mapped[str] = mapped_column(String(200))
    author: Mapped[str] = mapped_column(String(100))
    title_key: Mapped[str] = mapped_column(String(200), default=_lowered("title"))
    author_key: Mapped[str] = mapped_column(String(100), default=_lowered("author"))
    isbn: Mapped[str] = mapped_column(String(13), unique=True, index=True)
    category: Mapped[str] = mapped_column(String(20))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    published_date: Mapped[date] = mapped_column(Date)
    cover_image_url: Mapped[str | None] = mapped_column(Text, default=None)

    # --- Stock ---
    # Frozen at creation (stock_quantity > 0); not recomputed on later changes
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=1)

    # --- Timestamps (naive UTC) ---
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
