"""Rule evaluator for create-book requests.

Every rule lives in one declaration-ordered table. A rule is a predicate
(``check``) or a store read (``store_check``) plus the message reported when
it fails, an applicability condition and a tier. All applicable rules run;
nothing short-circuits. The store reads have no dependency on one another
and are awaited together, then merged with the synchronous results so the
violation list always follows table order.

Rule violations are data. Only store failures and cancellation raise.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Optional

from bookstore_catalog.config_loader import (
    AUTHOR_MAX_LENGTH,
    AUTHOR_MIN_LENGTH,
    CHILDREN_MAX_PRICE,
    DAILY_CREATION_LIMIT,
    EARLIEST_PUBLISHED_YEAR,
    EXPENSIVE_MAX_STOCK,
    EXPENSIVE_PRICE,
    FICTION_AUTHOR_MIN_LENGTH,
    HIGH_VALUE_MAX_STOCK,
    HIGH_VALUE_PRICE,
    PRICE_MAX_EXCLUSIVE,
    STOCK_MAX,
    TECHNICAL_MAX_AGE_YEARS,
    TECHNICAL_MIN_PRICE,
    TITLE_MAX_LENGTH,
)
from bookstore_catalog.errors import EvaluationInterrupted, InfrastructureFailure, StoreError
from bookstore_catalog.events import LogEvent
from bookstore_catalog.state import (
    Category,
    CreateRequest,
    RuleTier,
    ValidationOutcome,
    Violation,
)
from bookstore_catalog.store import CatalogStore
from bookstore_catalog.validators import (
    has_technical_keyword,
    is_blank,
    is_child_appropriate_title,
    is_clean_title,
    is_published_within,
    is_valid_author_name,
    is_valid_image_url,
    is_valid_isbn,
    normalize_isbn,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Subject:
    """A request plus the values every rule derives from it."""

    request: CreateRequest
    today: date
    isbn: str  # normalized
    category: Optional[Category]
    price_is_finite: bool  # NaN and infinities fail price_positive only

    @classmethod
    def build(cls, request: CreateRequest, now: datetime) -> "Subject":
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return cls(
            request=request,
            today=now.date(),
            isbn=normalize_isbn(request.isbn),
            category=Category.parse(request.category),
            price_is_finite=request.price.is_finite(),
        )


@dataclass(frozen=True)
class Rule:
    name: str
    tier: RuleTier
    message: str
    applies: Callable[[Subject], bool]
    check: Optional[Callable[[Subject], bool]] = None
    store_check: Optional[Callable[[CatalogStore, Subject], Awaitable[bool]]] = None

    @property
    def reads_store(self) -> bool:
        return self.store_check is not None


# ===== Applicability conditions =====


def _always(_: Subject) -> bool:
    return True


def _title_present(s: Subject) -> bool:
    return not is_blank(s.request.title)


def _author_present(s: Subject) -> bool:
    return not is_blank(s.request.author)


def _category_is(category: Category) -> Callable[[Subject], bool]:
    def applies(s: Subject) -> bool:
        return s.category is category

    return applies


def _priced(condition: Callable[[Subject], bool]) -> Callable[[Subject], bool]:
    """Gate a price comparison on a finite price (NaN comparisons raise)."""

    def applies(s: Subject) -> bool:
        return s.price_is_finite and condition(s)

    return applies


# ===== Store-backed checks =====


async def _title_author_is_unique(store: CatalogStore, s: Subject) -> bool:
    return not await store.exists_title_author(s.request.title, s.request.author)


async def _isbn_is_unique(store: CatalogStore, s: Subject) -> bool:
    exists = await store.exists_isbn(s.isbn)
    logger.info(
        "ISBN uniqueness check completed",
        extra={"event": LogEvent.ISBN_CHECK_PERFORMED, "isbn": s.isbn, "exists": exists},
    )
    return not exists


async def _under_daily_limit(store: CatalogStore, s: Subject) -> bool:
    count = await store.count_created_on(s.today)
    if count >= DAILY_CREATION_LIMIT:
        logger.warning(
            "Daily book creation limit reached",
            extra={"count": count, "limit": DAILY_CREATION_LIMIT},
        )
    return count < DAILY_CREATION_LIMIT


# ===== Rule table (declaration order == report order) =====

_S, _C, _A = RuleTier.STRUCTURAL, RuleTier.CATEGORY, RuleTier.AGGREGATE
_TECHNICAL = _category_is(Category.TECHNICAL)
_CHILDREN = _category_is(Category.CHILDREN)
_FICTION = _category_is(Category.FICTION)

RULES: tuple[Rule, ...] = (
    # --- title ---
    Rule("title_required", _S, "Title is required.",
         _always, check=lambda s: not is_blank(s.request.title)),
    Rule("title_max_length", _S, f"Title must not exceed {TITLE_MAX_LENGTH} characters.",
         _title_present, check=lambda s: len(s.request.title) <= TITLE_MAX_LENGTH),
    Rule("title_content", _S, "Title contains inappropriate content.",
         _title_present, check=lambda s: is_clean_title(s.request.title)),
    Rule("title_author_unique", _S, "A book with this title and author already exists.",
         lambda s: _title_present(s) and _author_present(s),
         store_check=_title_author_is_unique),
    # --- author ---
    Rule("author_required", _S, "Author is required.",
         _always, check=lambda s: not is_blank(s.request.author)),
    Rule("author_min_length", _S, f"Author must be at least {AUTHOR_MIN_LENGTH} characters.",
         _author_present, check=lambda s: len(s.request.author) >= AUTHOR_MIN_LENGTH),
    Rule("author_max_length", _S, f"Author must not exceed {AUTHOR_MAX_LENGTH} characters.",
         _author_present, check=lambda s: len(s.request.author) <= AUTHOR_MAX_LENGTH),
    Rule("author_charset", _S,
         "Author contains invalid characters. Only letters, spaces, hyphens, "
         "apostrophes, and dots are allowed.",
         _author_present, check=lambda s: is_valid_author_name(s.request.author)),
    # --- isbn ---
    Rule("isbn_required", _S, "ISBN is required.",
         _always, check=lambda s: not is_blank(s.request.isbn)),
    Rule("isbn_format", _S, "ISBN must be a valid 10 or 13 digit format.",
         lambda s: not is_blank(s.request.isbn), check=lambda s: is_valid_isbn(s.isbn)),
    Rule("isbn_unique", _S, "ISBN already exists in the system.",
         lambda s: bool(s.isbn), store_check=_isbn_is_unique),
    # --- category ---
    Rule("category_valid", _S,
         "Category must be one of: " + ", ".join(c.value for c in Category) + ".",
         _always, check=lambda s: s.category is not None),
    # --- price ---
    Rule("price_positive", _S, "Price must be greater than 0.",
         _always, check=lambda s: s.price_is_finite and s.request.price > 0),
    Rule("price_max", _S, f"Price must be less than ${PRICE_MAX_EXCLUSIVE:,}.",
         _priced(_always), check=lambda s: s.request.price < PRICE_MAX_EXCLUSIVE),
    Rule("technical_min_price", _C, f"Technical books must cost at least ${TECHNICAL_MIN_PRICE}.",
         _priced(_TECHNICAL), check=lambda s: s.request.price >= TECHNICAL_MIN_PRICE),
    Rule("children_max_price", _C, f"Children's books must cost ${CHILDREN_MAX_PRICE} or less.",
         _priced(_CHILDREN), check=lambda s: s.request.price <= CHILDREN_MAX_PRICE),
    # --- published date ---
    Rule("published_not_future", _S, "Published date cannot be in the future.",
         _always, check=lambda s: s.request.published_date <= s.today),
    Rule("published_not_ancient", _S,
         f"Published date cannot be before year {EARLIEST_PUBLISHED_YEAR}.",
         _always, check=lambda s: s.request.published_date >= date(EARLIEST_PUBLISHED_YEAR, 1, 1)),
    Rule("technical_recent", _C,
         f"Technical books must be published within the last {TECHNICAL_MAX_AGE_YEARS} years.",
         _TECHNICAL,
         check=lambda s: is_published_within(
             s.request.published_date, s.today, TECHNICAL_MAX_AGE_YEARS)),
    # --- stock ---
    Rule("stock_not_negative", _S, "Stock quantity cannot be negative.",
         _always, check=lambda s: s.request.stock_quantity >= 0),
    Rule("stock_max", _S, f"Stock quantity cannot exceed {STOCK_MAX:,}.",
         _always, check=lambda s: s.request.stock_quantity <= STOCK_MAX),
    # --- cover image ---
    Rule("cover_image_url", _S,
         "Cover image URL must be a valid HTTP/HTTPS URL ending with an image "
         "extension (.jpg, .jpeg, .png, .gif, .webp).",
         lambda s: bool(s.request.cover_image_url),
         check=lambda s: is_valid_image_url(s.request.cover_image_url)),
    # --- category content policy ---
    Rule("technical_keywords", _C, "Technical books must include technical keywords in the title.",
         _TECHNICAL, check=lambda s: has_technical_keyword(s.request.title or "")),
    Rule("children_appropriate_title", _C,
         "Children's book titles must be appropriate for children.",
         _CHILDREN, check=lambda s: is_child_appropriate_title(s.request.title or "")),
    Rule("fiction_author_length", _C,
         f"Fiction books require an author name of at least {FICTION_AUTHOR_MIN_LENGTH} characters.",
         _FICTION, check=lambda s: len(s.request.author or "") >= FICTION_AUTHOR_MIN_LENGTH),
    # --- cross-field / aggregate ---
    Rule("expensive_stock_limit", _A,
         f"Books priced over ${EXPENSIVE_PRICE} must have stock quantities of "
         f"{EXPENSIVE_MAX_STOCK} or less.",
         _priced(lambda s: s.request.price > EXPENSIVE_PRICE),
         check=lambda s: s.request.stock_quantity <= EXPENSIVE_MAX_STOCK),
    Rule("high_value_stock_limit", _A,
         f"Books priced over ${HIGH_VALUE_PRICE} must have stock quantities of "
         f"{HIGH_VALUE_MAX_STOCK} or less.",
         _priced(lambda s: s.request.price > HIGH_VALUE_PRICE),
         check=lambda s: s.request.stock_quantity <= HIGH_VALUE_MAX_STOCK),
    Rule("daily_creation_limit", _A,
         f"Daily book creation limit of {DAILY_CREATION_LIMIT} has been reached.",
         _always, store_check=_under_daily_limit),
)

_STOCK_RULES = frozenset({"expensive_stock_limit", "high_value_stock_limit"})


class RuleEvaluator:
    """Evaluates create requests against ``RULES`` using a catalog store.

    Holds no per-request state; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        clock: Clock = utc_now,
        rules: tuple[Rule, ...] = RULES,
    ):
        self._store = store
        self._clock = clock
        self._rules = rules

    async def evaluate(self, request: CreateRequest) -> ValidationOutcome:
        """Run every applicable rule and collect all violations.

        Raises:
            StoreError: A store read failed.
            EvaluationInterrupted: The store reads were cancelled.
        """
        subject = Subject.build(request, self._clock())
        applicable = [rule for rule in self._rules if rule.applies(subject)]

        store_results = await self._run_store_checks(
            [rule for rule in applicable if rule.reads_store], subject
        )

        violations: list[Violation] = []
        for rule in applicable:
            passed = store_results[rule.name] if rule.reads_store else rule.check(subject)
            if passed:
                continue
            violations.append(Violation(rule.name, rule.tier, rule.message))
            if rule.name in _STOCK_RULES:
                logger.warning(
                    "Stock limit exceeded",
                    extra={
                        "event": LogEvent.STOCK_CHECK_PERFORMED,
                        "rule": rule.name,
                        "price": str(request.price),
                        "stock_quantity": request.stock_quantity,
                    },
                )

        outcome = ValidationOutcome(ok=not violations, violations=violations)
        if not outcome.ok:
            logger.warning(
                "Book validation failed: %s",
                "; ".join(outcome.errors),
                extra={"event": LogEvent.VALIDATION_FAILED, "error_count": len(violations)},
            )
        return outcome

    async def _run_store_checks(self, rules: list[Rule], subject: Subject) -> dict[str, bool]:
        try:
            results = await asyncio.gather(
                *(rule.store_check(self._store, subject) for rule in rules),
                return_exceptions=True,
            )
        except asyncio.CancelledError as exc:
            raise EvaluationInterrupted() from exc

        outcome: dict[str, bool] = {}
        for rule, result in zip(rules, results):
            if isinstance(result, asyncio.CancelledError):
                raise EvaluationInterrupted(f"Store read for {rule.name} was cancelled") from result
            if isinstance(result, InfrastructureFailure):
                raise result
            if isinstance(result, BaseException):
                raise StoreError(f"Store read for {rule.name} failed: {result}") from result
            outcome[rule.name] = bool(result)
        return outcome


async def evaluate(
    request: CreateRequest,
    store: CatalogStore,
    *,
    now: Optional[datetime] = None,
) -> ValidationOutcome:
    """Evaluate ``request`` once against ``store`` (convenience wrapper)."""
    clock: Clock = (lambda: now) if now is not None else utc_now
    return await RuleEvaluator(store, clock=clock).evaluate(request)
