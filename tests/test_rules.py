# Tests for the create-book rule evaluator

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bookstore_catalog.errors import (
    EvaluationInterrupted,
    InfrastructureFailure,
    StoreError,
)
from bookstore_catalog.events import LogEvent
from bookstore_catalog.rules import RULES, RuleEvaluator, evaluate
from bookstore_catalog.state import CatalogItem, Category, CreateRequest, RuleTier
from bookstore_catalog.store import InMemoryCatalogStore

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

DAILY_LIMIT_MSG = "Daily book creation limit of 500 has been reached."
DUPLICATE_ISBN_MSG = "ISBN already exists in the system."


def _request(**overrides) -> CreateRequest:
    fields = dict(
        title="The Silent River",
        author="Jane Austen",
        isbn="9780306406157",
        category=Category.FICTION,
        price=Decimal("19.99"),
        published_date=date(2020, 1, 1),
        cover_image_url=None,
        stock_quantity=10,
    )
    fields.update(overrides)
    return CreateRequest(**fields)


def _technical(**overrides) -> CreateRequest:
    fields = dict(
        title="Cloud Engineering Handbook",
        author="Jane Doe",
        category=Category.TECHNICAL,
        price=Decimal("45.00"),
        published_date=date(2023, 1, 1),
    )
    fields.update(overrides)
    return _request(**fields)


def _item(isbn: str, *, title: str = "Existing Book", author: str = "Some Author",
          created_at: datetime = NOW) -> CatalogItem:
    return CatalogItem(
        id=f"id-{isbn}",
        title=title,
        author=author,
        isbn=isbn,
        category=Category.NON_FICTION,
        price=Decimal("10.00"),
        published_date=date(2019, 1, 1),
        cover_image_url=None,
        is_available=True,
        stock_quantity=3,
        created_at=created_at,
    )


async def _errors(request: CreateRequest, store: InMemoryCatalogStore | None = None) -> list[str]:
    outcome = await evaluate(request, store or InMemoryCatalogStore(), now=NOW)
    return outcome.errors


class TestRuleTable:
    def test_rule_names_unique(self):
        names = [rule.name for rule in RULES]
        assert len(names) == len(set(names)) == 28

    def test_every_rule_has_one_check(self):
        for rule in RULES:
            assert (rule.check is None) != (rule.store_check is None), rule.name

    def test_store_reads(self):
        assert [r.name for r in RULES if r.reads_store] == [
            "title_author_unique",
            "isbn_unique",
            "daily_creation_limit",
        ]


class TestStructuralRules:
    @pytest.mark.asyncio
    async def test_valid_request(self):
        outcome = await evaluate(_request(), InMemoryCatalogStore(), now=NOW)
        assert outcome.ok is True
        assert outcome.errors == []

    @pytest.mark.asyncio
    async def test_no_short_circuit(self):
        """An empty title and a bad ISBN are both reported, in table order"""
        errors = await _errors(_request(title="", isbn="12345"))
        assert errors == [
            "Title is required.",
            "ISBN must be a valid 10 or 13 digit format.",
        ]

    @pytest.mark.asyncio
    async def test_blank_fields_report_only_required(self):
        errors = await _errors(_request(title="  ", author="", isbn="", category=Category.NON_FICTION))
        assert errors == ["Title is required.", "Author is required.", "ISBN is required."]

    @pytest.mark.asyncio
    async def test_title_too_long(self):
        errors = await _errors(_request(title="a" * 201))
        assert errors == ["Title must not exceed 200 characters."]

    @pytest.mark.asyncio
    async def test_title_at_max_length(self):
        assert await _errors(_request(title="a" * 200)) == []

    @pytest.mark.asyncio
    async def test_title_blocklist(self):
        errors = await _errors(_request(title="My BADWORD Story"))
        assert errors == ["Title contains inappropriate content."]

    @pytest.mark.asyncio
    async def test_author_too_short(self):
        errors = await _errors(_request(author="J", category=Category.NON_FICTION))
        assert errors == ["Author must be at least 2 characters."]

    @pytest.mark.asyncio
    async def test_author_too_long(self):
        errors = await _errors(_request(author="A" * 101))
        assert errors == ["Author must not exceed 100 characters."]

    @pytest.mark.asyncio
    async def test_author_charset(self):
        errors = await _errors(_request(author="John3 Smith"))
        assert errors == [
            "Author contains invalid characters. Only letters, spaces, hyphens, "
            "apostrophes, and dots are allowed."
        ]

    @pytest.mark.asyncio
    async def test_hyphenated_isbn_is_valid(self):
        assert await _errors(_request(isbn="978-0-306-40615-7")) == []

    @pytest.mark.asyncio
    async def test_unknown_category(self):
        errors = await _errors(_request(category="Poetry"))
        assert errors == ["Category must be one of: Fiction, NonFiction, Technical, Children."]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["0", "-5"])
    async def test_price_must_be_positive(self, price):
        errors = await _errors(_request(price=Decimal(price)))
        assert errors == ["Price must be greater than 0."]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity"])
    async def test_non_finite_price_fails_only_positive_check(self, price):
        assert await _errors(_request(price=Decimal(price))) == ["Price must be greater than 0."]

    @pytest.mark.asyncio
    async def test_non_finite_price_skips_category_price_rules(self):
        errors = await _errors(_technical(price=Decimal("NaN"), stock_quantity=500))
        assert errors == ["Price must be greater than 0."]

    @pytest.mark.asyncio
    async def test_price_upper_bound(self):
        errors = await _errors(_request(price=Decimal("10000"), stock_quantity=5))
        assert errors == ["Price must be less than $10,000."]

    @pytest.mark.asyncio
    async def test_future_published_date(self):
        errors = await _errors(_request(published_date=TODAY + timedelta(days=1)))
        assert errors == ["Published date cannot be in the future."]

    @pytest.mark.asyncio
    async def test_published_today_is_allowed(self):
        assert await _errors(_request(published_date=TODAY)) == []

    @pytest.mark.asyncio
    async def test_published_before_1400(self):
        errors = await _errors(_request(published_date=date(1399, 12, 31)))
        assert errors == ["Published date cannot be before year 1400."]

    @pytest.mark.asyncio
    async def test_negative_stock(self):
        errors = await _errors(_request(stock_quantity=-1))
        assert errors == ["Stock quantity cannot be negative."]

    @pytest.mark.asyncio
    async def test_stock_above_max(self):
        errors = await _errors(_request(stock_quantity=100_001))
        assert errors == ["Stock quantity cannot exceed 100,000."]

    @pytest.mark.asyncio
    async def test_zero_stock_is_allowed(self):
        assert await _errors(_request(stock_quantity=0)) == []

    @pytest.mark.asyncio
    async def test_bad_cover_url(self):
        errors = await _errors(_request(cover_image_url="ftp://example.com/cover.jpg"))
        assert errors == [
            "Cover image URL must be a valid HTTP/HTTPS URL ending with an image "
            "extension (.jpg, .jpeg, .png, .gif, .webp)."
        ]

    @pytest.mark.asyncio
    async def test_empty_cover_url_is_skipped(self):
        assert await _errors(_request(cover_image_url="")) == []


class TestCategoryRules:
    @pytest.mark.asyncio
    async def test_valid_technical(self):
        assert await _errors(_technical()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["0.01", "10.00", "19.99"])
    async def test_technical_rejects_price_below_20(self, price):
        errors = await _errors(_technical(price=Decimal(price)))
        assert errors == ["Technical books must cost at least $20.00."]

    @pytest.mark.asyncio
    async def test_technical_price_exactly_20(self):
        assert await _errors(_technical(price=Decimal("20.00"))) == []

    @pytest.mark.asyncio
    async def test_technical_needs_keyword(self):
        errors = await _errors(_technical(title="A Practical Guide"))
        assert errors == ["Technical books must include technical keywords in the title."]

    @pytest.mark.asyncio
    async def test_technical_recency_cutoff(self):
        assert await _errors(_technical(published_date=date(2020, 6, 15))) == []
        errors = await _errors(_technical(published_date=date(2020, 6, 14)))
        assert errors == ["Technical books must be published within the last 5 years."]

    @pytest.mark.asyncio
    async def test_technical_violations_reported_once(self):
        errors = await _errors(
            _technical(title="A Practical Guide", price=Decimal("5"), published_date=date(2010, 1, 1))
        )
        assert errors == [
            "Technical books must cost at least $20.00.",
            "Technical books must be published within the last 5 years.",
            "Technical books must include technical keywords in the title.",
        ]

    @pytest.mark.asyncio
    async def test_children_price_ceiling(self):
        base = dict(category=Category.CHILDREN, title="Happy Days")
        assert await _errors(_request(price=Decimal("50.00"), **base)) == []
        errors = await _errors(_request(price=Decimal("50.01"), **base))
        assert errors == ["Children's books must cost $50.00 or less."]

    @pytest.mark.asyncio
    async def test_children_restricted_title(self):
        errors = await _errors(_request(category=Category.CHILDREN, title="A Scary Night"))
        assert errors == ["Children's book titles must be appropriate for children."]

    @pytest.mark.asyncio
    async def test_children_blocked_title_reports_both(self):
        errors = await _errors(_request(category=Category.CHILDREN, title="Badword Tales"))
        assert errors == [
            "Title contains inappropriate content.",
            "Children's book titles must be appropriate for children.",
        ]

    @pytest.mark.asyncio
    async def test_fiction_author_length(self):
        errors = await _errors(_request(author="Anne"))
        assert errors == ["Fiction books require an author name of at least 5 characters."]

    @pytest.mark.asyncio
    async def test_category_rules_do_not_leak(self):
        """Non-fiction has no category policy"""
        request = _request(category=Category.NON_FICTION, author="Anne", price=Decimal("5"))
        assert await _errors(request) == []

    @pytest.mark.asyncio
    async def test_violation_tiers(self):
        outcome = await evaluate(_technical(price=Decimal("5")), InMemoryCatalogStore(), now=NOW)
        assert [(v.rule, v.tier) for v in outcome.violations] == [
            ("technical_min_price", RuleTier.CATEGORY),
        ]


class TestCrossFieldRules:
    @pytest.mark.asyncio
    async def test_expensive_stock_limit(self):
        errors = await _errors(_request(price=Decimal("150"), stock_quantity=21))
        assert errors == ["Books priced over $100 must have stock quantities of 20 or less."]

    @pytest.mark.asyncio
    async def test_price_of_exactly_100_is_not_expensive(self):
        assert await _errors(_request(price=Decimal("100"), stock_quantity=50)) == []

    @pytest.mark.asyncio
    async def test_high_value_stock_limit(self):
        errors = await _errors(_request(price=Decimal("600"), stock_quantity=15))
        assert errors == ["Books priced over $500 must have stock quantities of 10 or less."]

    @pytest.mark.asyncio
    async def test_both_stock_limits(self):
        errors = await _errors(_request(price=Decimal("600"), stock_quantity=25))
        assert errors == [
            "Books priced over $100 must have stock quantities of 20 or less.",
            "Books priced over $500 must have stock quantities of 10 or less.",
        ]


class TestStoreRules:
    @pytest.mark.asyncio
    async def test_duplicate_isbn(self):
        store = InMemoryCatalogStore([_item("1111111111")])
        errors = await _errors(_request(isbn="1111111111"), store)
        assert errors == [DUPLICATE_ISBN_MSG]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("isbn", ["111-1111111", " 1111111111 ", "1-1-1-1-1-1-1-1-1-1"])
    async def test_duplicate_isbn_after_normalization(self, isbn):
        store = InMemoryCatalogStore([_item("1111111111")])
        assert DUPLICATE_ISBN_MSG in await _errors(_request(isbn=isbn), store)

    @pytest.mark.asyncio
    async def test_duplicate_title_author_case_insensitive(self):
        store = InMemoryCatalogStore([_item("1111111111", title="The Silent River", author="Jane Austen")])
        errors = await _errors(_request(title="the silent RIVER", author="JANE AUSTEN"), store)
        assert errors == ["A book with this title and author already exists."]

    @pytest.mark.asyncio
    async def test_daily_ceiling(self):
        items = [
            _item(f"{n:010d}", created_at=NOW.replace(hour=0) + timedelta(seconds=n))
            for n in range(500)
        ]
        store = InMemoryCatalogStore(items)
        assert await _errors(_request(), store) == [DAILY_LIMIT_MSG]

    @pytest.mark.asyncio
    async def test_daily_ceiling_reported_with_other_violations(self):
        items = [_item(f"{n:010d}") for n in range(500)]
        errors = await _errors(_request(price=Decimal("0")), InMemoryCatalogStore(items))
        assert errors == ["Price must be greater than 0.", DAILY_LIMIT_MSG]

    @pytest.mark.asyncio
    async def test_below_daily_ceiling(self):
        items = [_item(f"{n:010d}") for n in range(499)]
        assert await _errors(_request(), InMemoryCatalogStore(items)) == []

    @pytest.mark.asyncio
    async def test_yesterday_does_not_count(self):
        yesterday = NOW - timedelta(days=1)
        items = [_item(f"{n:010d}", created_at=yesterday) for n in range(500)]
        assert await _errors(_request(), InMemoryCatalogStore(items)) == []


class _SlowStore(InMemoryCatalogStore):
    """Records how many store reads are in flight at once."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0

    async def _read(self, value):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return value

    async def count_created_on(self, day):
        return await self._read(0)

    async def exists_title_author(self, title, author):
        return await self._read(False)

    async def exists_isbn(self, isbn):
        return await self._read(False)


class _FailingStore(InMemoryCatalogStore):
    def __init__(self, exc: BaseException):
        super().__init__()
        self._exc = exc

    async def exists_isbn(self, isbn):
        raise self._exc


class TestEvaluatorConcurrency:
    @pytest.mark.asyncio
    async def test_store_reads_run_concurrently(self):
        store = _SlowStore()
        outcome = await RuleEvaluator(store, clock=lambda: NOW).evaluate(_request())
        assert outcome.ok is True
        assert store.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_store_reads_run_despite_structural_failures(self):
        store = _SlowStore()
        await RuleEvaluator(store, clock=lambda: NOW).evaluate(_request(price=Decimal("0")))
        assert store.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_unexpected_store_error_is_wrapped(self):
        store = _FailingStore(RuntimeError("connection reset"))
        with pytest.raises(StoreError) as exc_info:
            await RuleEvaluator(store, clock=lambda: NOW).evaluate(_request())
        assert isinstance(exc_info.value, InfrastructureFailure)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_store_error_propagates_unchanged(self):
        error = StoreError("database is locked")
        with pytest.raises(StoreError) as exc_info:
            await RuleEvaluator(_FailingStore(error), clock=lambda: NOW).evaluate(_request())
        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_cancelled_read_is_interruption(self):
        store = _FailingStore(asyncio.CancelledError())
        with pytest.raises(EvaluationInterrupted):
            await RuleEvaluator(store, clock=lambda: NOW).evaluate(_request())

    @pytest.mark.asyncio
    async def test_cancelling_evaluation(self):
        started = asyncio.Event()

        class _BlockingStore(InMemoryCatalogStore):
            async def exists_isbn(self, isbn):
                started.set()
                await asyncio.Event().wait()

        evaluator = RuleEvaluator(_BlockingStore(), clock=lambda: NOW)
        task = asyncio.create_task(evaluator.evaluate(_request()))
        await started.wait()
        task.cancel()
        with pytest.raises(EvaluationInterrupted):
            await task


class TestEvaluatorLogging:
    @pytest.mark.asyncio
    async def test_validation_failed_event(self, caplog):
        caplog.set_level(logging.INFO, logger="bookstore_catalog.rules")
        await _errors(_request(title=""))
        events = [getattr(r, "event", None) for r in caplog.records]
        assert LogEvent.VALIDATION_FAILED in events
        assert LogEvent.ISBN_CHECK_PERFORMED in events

    @pytest.mark.asyncio
    async def test_stock_check_event(self, caplog):
        caplog.set_level(logging.INFO, logger="bookstore_catalog.rules")
        await _errors(_request(price=Decimal("150"), stock_quantity=21))
        stock_records = [
            r for r in caplog.records if getattr(r, "event", None) == LogEvent.STOCK_CHECK_PERFORMED
        ]
        assert len(stock_records) == 1
        assert stock_records[0].rule == "expensive_stock_limit"

    @pytest.mark.asyncio
    async def test_no_failure_event_when_valid(self, caplog):
        caplog.set_level(logging.INFO, logger="bookstore_catalog.rules")
        await _errors(_request())
        assert all(getattr(r, "event", None) != LogEvent.VALIDATION_FAILED for r in caplog.records)


class TestEndToEndScenarios:
    @pytest.mark.asyncio
    async def test_technical_scenario_passes(self):
        request = CreateRequest(
            title="Modern cloud programming guide",
            author="Jane Doe",
            isbn="1234567890",
            category=Category.TECHNICAL,
            price=Decimal("59.99"),
            published_date=date(2023, 6, 15),
            stock_quantity=12,
        )
        outcome = await evaluate(request, InMemoryCatalogStore(), now=NOW)
        assert outcome.ok is True

    @pytest.mark.asyncio
    async def test_children_scenario_passes(self):
        request = CreateRequest(
            title="Happy adventures programming",
            author="Alice Wonderland",
            isbn="2222222222",
            category=Category.CHILDREN,
            price=Decimal("40.00"),
            published_date=date(2025, 3, 15),
            cover_image_url="https://example.com/covers/happy.png",
            stock_quantity=7,
        )
        outcome = await evaluate(request, InMemoryCatalogStore(), now=NOW)
        assert outcome.ok is True
