"""Store adapter contract and an in-memory implementation.

The rule evaluator only needs the three read operations; the orchestrator
uses the rest. Implementations may do real I/O, so every operation is a
coroutine.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Protocol, runtime_checkable

from bookstore_catalog.errors import ConflictFailure
from bookstore_catalog.state import CatalogItem

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogStore(Protocol):
    """Operations the catalog core needs from durable storage."""

    async def count_created_on(self, day: date) -> int:
        """Number of items whose ``created_at`` falls on ``day`` (UTC)."""
        ...

    async def exists_title_author(self, title: str, author: str) -> bool:
        """True if an item has this title and author, compared case-insensitively."""
        ...

    async def exists_isbn(self, isbn: str) -> bool:
        """True if an item already uses this canonical ISBN."""
        ...

    async def find_by_id(self, item_id: str) -> CatalogItem | None: ...

    async def list_all(self) -> list[CatalogItem]: ...

    async def add(self, item: CatalogItem) -> None:
        """Stage ``item`` for the next ``persist()``."""
        ...

    async def remove(self, item_id: str) -> bool:
        """Delete an item immediately. Returns False if it did not exist."""
        ...

    async def persist(self) -> None:
        """Commit staged items. Raises StoreError / ConflictFailure."""
        ...


class InMemoryCatalogStore:
    """Dict-backed store used by the CLI and the engine tests.

    Enforces ISBN uniqueness at ``persist()`` the way a database unique
    constraint would.
    """

    def __init__(self, items: list[CatalogItem] | None = None):
        self._items: dict[str, CatalogItem] = {}
        self._pending: list[CatalogItem] = []
        for item in items or []:
            self._items[item.id] = item

    async def count_created_on(self, day: date) -> int:
        return sum(1 for item in self._items.values() if item.created_at.date() == day)

    async def exists_title_author(self, title: str, author: str) -> bool:
        title_key, author_key = title.lower(), author.lower()
        return any(
            item.title.lower() == title_key and item.author.lower() == author_key
            for item in self._items.values()
        )

    async def exists_isbn(self, isbn: str) -> bool:
        return any(item.isbn == isbn for item in self._items.values())

    async def find_by_id(self, item_id: str) -> CatalogItem | None:
        return self._items.get(item_id)

    async def list_all(self) -> list[CatalogItem]:
        return sorted(self._items.values(), key=lambda item: item.created_at)

    async def add(self, item: CatalogItem) -> None:
        self._pending.append(item)

    async def remove(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    async def persist(self) -> None:
        pending, self._pending = self._pending, []
        taken = {item.isbn for item in self._items.values()}
        for item in pending:
            if item.isbn in taken:
                raise ConflictFailure(item.isbn)
            taken.add(item.isbn)
        for item in pending:
            self._items[item.id] = item
        logger.debug("Persisted %d item(s)", len(pending))
