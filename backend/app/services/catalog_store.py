"""SQLAlchemy implementation of the ``CatalogStore`` protocol.

Each read opens its own session and runs on a worker thread
(``asyncio.to_thread``), so the evaluator's three store reads overlap
instead of queueing on the event loop. ``add`` only stages; ``persist``
writes every staged item in one transaction.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bookstore_catalog.errors import ConflictFailure, StoreError
from bookstore_catalog.state import CatalogItem, Category

from app.models.book import Book

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def item_to_row(item: CatalogItem) -> Book:
    category = item.category.value if isinstance(item.category, Category) else str(item.category)
    return Book(
        id=item.id,
        title=item.title,
        author=item.author,
        title_key=item.title.lower(),
        author_key=item.author.lower(),
        isbn=item.isbn,
        category=category,
        price=item.price,
        published_date=item.published_date,
        cover_image_url=item.cover_image_url,
        is_available=item.is_available,
        stock_quantity=item.stock_quantity,
        created_at=_to_naive_utc(item.created_at),
        updated_at=_to_naive_utc(item.updated_at) if item.updated_at else None,
    )


def row_to_item(row: Book) -> CatalogItem:
    return CatalogItem(
        id=row.id,
        title=row.title,
        author=row.author,
        isbn=row.isbn,
        category=Category.parse(row.category) or row.category,
        price=row.price,
        published_date=row.published_date,
        cover_image_url=row.cover_image_url,
        is_available=row.is_available,
        stock_quantity=row.stock_quantity,
        created_at=row.created_at.replace(tzinfo=timezone.utc),
        updated_at=row.updated_at.replace(tzinfo=timezone.utc) if row.updated_at else None,
    )


class SqlCatalogStore:
    """Catalog store backed by a SQLAlchemy ``sessionmaker``."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._pending: list[CatalogItem] = []

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self, operation: str, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._session_factory() as session:
                return fn(session)

        try:
            return await asyncio.to_thread(work)
        except SQLAlchemyError as e:
            logger.error("Store operation %s failed: %s", operation, e)
            raise StoreError(f"Store operation '{operation}' failed") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def count_created_on(self, day: date) -> int:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        stmt = (
            select(func.count())
            .select_from(Book)
            .where(Book.created_at >= start, Book.created_at < end)
        )
        return await self._run("count_created_on", lambda s: s.scalar(stmt) or 0)

    async def exists_title_author(self, title: str, author: str) -> bool:
        stmt = select(Book.id).where(
            Book.title_key == title.lower(),
            Book.author_key == author.lower(),
        ).limit(1)
        return await self._run(
            "exists_title_author", lambda s: s.scalar(stmt) is not None
        )

    async def exists_isbn(self, isbn: str) -> bool:
        stmt = select(Book.id).where(Book.isbn == isbn).limit(1)
        return await self._run("exists_isbn", lambda s: s.scalar(stmt) is not None)

    async def find_by_id(self, item_id: str) -> CatalogItem | None:
        def fetch(session: Session) -> CatalogItem | None:
            row = session.get(Book, item_id)
            return row_to_item(row) if row else None

        return await self._run("find_by_id", fetch)

    async def list_all(self) -> list[CatalogItem]:
        stmt = select(Book).order_by(Book.created_at)
        return await self._run(
            "list_all", lambda s: [row_to_item(row) for row in s.scalars(stmt)]
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, item: CatalogItem) -> None:
        self._pending.append(item)

    async def remove(self, item_id: str) -> bool:
        def delete(session: Session) -> bool:
            row = session.get(Book, item_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

        return await self._run("remove", delete)

    async def persist(self) -> None:
        pending, self._pending = self._pending, []
        if not pending:
            return

        def commit(session: Session) -> None:
            session.add_all([item_to_row(item) for item in pending])
            session.commit()

        try:
            await self._run("persist", commit)
        except StoreError as e:
            if isinstance(e.__cause__, IntegrityError):
                isbn = pending[0].isbn if len(pending) == 1 else ", ".join(i.isbn for i in pending)
                logger.warning("ISBN uniqueness constraint rejected commit: %s", isbn)
                raise ConflictFailure(isbn) from e.__cause__
            raise
