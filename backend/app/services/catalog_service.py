"""Catalog service: the create / read / delete orchestration.

Keeps the HTTP layer thin. Rule evaluation and projection live in the
``bookstore_catalog`` engine; this module sequences them around the store
and the list cache and emits the structured events for each stage.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from bookstore_catalog.errors import CatalogError, NotFound, ValidationFailure
from bookstore_catalog.events import LogEvent
from bookstore_catalog.projection import DEFAULT_PRICE_FORMAT, PriceFormat, project
from bookstore_catalog.rules import RuleEvaluator
from bookstore_catalog.state import CatalogItem, CreateRequest, Profile
from bookstore_catalog.store import CatalogStore
from bookstore_catalog.validators import normalize_isbn

from app.services.creation_metrics import CreationMetrics, elapsed_ms, log_creation_metrics
from app.services.list_cache import ALL_BOOKS_KEY, ListCache

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Create, fetch, list and delete catalog books."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        cache: ListCache | None = None,
        price_format: PriceFormat = DEFAULT_PRICE_FORMAT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._cache = cache if cache is not None else ListCache()
        self._price_format = price_format
        self._clock = clock
        self._evaluator = RuleEvaluator(store, clock=clock)

    def _project(self, item: CatalogItem, now: datetime) -> Profile:
        return project(item, today=now.date(), price_format=self._price_format)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_book(self, request: CreateRequest) -> Profile:
        """Validate, persist and project a new book.

        Raises:
            ValidationFailure: One or more rules failed; nothing was stored.
            ConflictFailure: The ISBN was taken between validation and commit.
            InfrastructureFailure: The store was unavailable.
        """
        operation_id = uuid.uuid4().hex[:8]
        category = getattr(request.category, "value", str(request.category))
        metrics = CreationMetrics(
            operation_id=operation_id,
            title=request.title,
            isbn=request.isbn,
            category=category,
        )
        logger.info(
            "Starting book creation: %s by %s",
            request.title,
            request.author,
            extra={
                "event": LogEvent.CREATION_STARTED,
                "operation_id": operation_id,
                "isbn": request.isbn,
                "category": category,
            },
        )

        try:
            started = time.monotonic()
            outcome = await self._evaluator.evaluate(request)
            metrics.validation_ms = elapsed_ms(started)
            if not outcome.ok:
                raise ValidationFailure(outcome.errors)

            now = self._clock()
            item = CatalogItem.from_request(request, now=now, isbn=normalize_isbn(request.isbn))

            logger.info(
                "Persisting book %s",
                item.id,
                extra={"event": LogEvent.DB_OPERATION_STARTED, "operation_id": operation_id},
            )
            started = time.monotonic()
            await self._store.add(item)
            await self._store.persist()
            metrics.persistence_ms = elapsed_ms(started)
            logger.info(
                "Persisted book %s",
                item.id,
                extra={
                    "event": LogEvent.DB_OPERATION_COMPLETED,
                    "operation_id": operation_id,
                    "book_id": item.id,
                    "duration_ms": metrics.persistence_ms,
                },
            )
        except CatalogError as e:
            metrics.finish(success=False, error_reason=f"{e.error_code}: {'; '.join(e.details) or e.message}")
            log_creation_metrics(logger, metrics)
            raise

        self._cache.invalidate(ALL_BOOKS_KEY)

        metrics.finish(success=True)
        log_creation_metrics(logger, metrics)
        return self._project(item, now)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_book(self, item_id: str) -> Profile:
        item = await self._store.find_by_id(item_id)
        if item is None:
            raise NotFound(item_id)
        return self._project(item, self._clock())

    async def list_books(self) -> list[Profile]:
        """All books in creation order, served from the list cache when warm."""
        cached = self._cache.get(ALL_BOOKS_KEY)
        if cached is not None:
            return cached
        now = self._clock()
        profiles = [self._project(item, now) for item in await self._store.list_all()]
        self._cache.set(ALL_BOOKS_KEY, profiles)
        return profiles

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_book(self, item_id: str) -> None:
        if not await self._store.remove(item_id):
            raise NotFound(item_id)
        self._cache.invalidate(ALL_BOOKS_KEY)
        logger.info("Deleted book %s", item_id)
