# Catalog data model
# Request, persisted item, display profile and validation outcome definitions

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Optional

CENTS = Decimal("0.01")


def quantize_cents(amount: Decimal) -> Decimal:
    """Round to cents with banker's rounding; non-finite or oversized values pass through."""
    if not amount.is_finite():
        return amount
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        # More digits than the context precision; price_max rejects it anyway
        return amount


class Category(str, Enum):
    """The four catalog categories. Closed set: no other value is valid."""

    FICTION = "Fiction"
    NON_FICTION = "NonFiction"
    TECHNICAL = "Technical"
    CHILDREN = "Children"

    @classmethod
    def parse(cls, raw: object) -> Optional["Category"]:
        """Return the category named by ``raw`` (member, value or name), else None."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        needle = raw.strip().lower()
        for member in cls:
            if needle in (member.value.lower(), member.name.lower()):
                return member
        return None


class RuleTier(IntEnum):
    """Rule tiers: Structural(1) -> Category(2) -> Aggregate(3)"""

    STRUCTURAL = 1  # always applied, single field
    CATEGORY = 2  # gated on the request category
    AGGREGATE = 3  # cross-field or whole-catalog


@dataclass(frozen=True)
class CreateRequest:
    """Incoming create-book payload. Transient, no identity.

    ``category`` holds a ``Category`` when the raw value names one; anything
    else is kept as given so the category rule can report it. ``price`` is
    rounded to cents here, so the validated value is the one that is stored.
    """

    title: str
    author: str
    isbn: str
    category: Category | str
    price: Decimal
    published_date: date
    cover_image_url: Optional[str] = None
    stock_quantity: int = 1

    def __post_init__(self) -> None:
        parsed = Category.parse(self.category)
        if parsed is not None:
            object.__setattr__(self, "category", parsed)
        price = self.price if isinstance(self.price, Decimal) else Decimal(str(self.price))
        object.__setattr__(self, "price", quantize_cents(price))
        if isinstance(self.published_date, datetime):
            object.__setattr__(self, "published_date", self.published_date.date())


@dataclass
class CatalogItem:
    """A persisted catalog entry.

    ``is_available`` is captured once at creation (stock > 0) and is not
    recomputed when stock changes later.
    """

    id: str
    title: str
    author: str
    isbn: str
    category: Category | str
    price: Decimal
    published_date: date
    cover_image_url: Optional[str]
    is_available: bool
    stock_quantity: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_request(
        cls,
        request: CreateRequest,
        *,
        now: Optional[datetime] = None,
        isbn: Optional[str] = None,
    ) -> "CatalogItem":
        """Build a new item from a validated request.

        Args:
            request: The request that passed evaluation.
            now: Creation timestamp (UTC); defaults to the current time.
            isbn: Canonical ISBN to store; defaults to the request value.
        """
        return cls(
            id=uuid.uuid4().hex,
            title=request.title,
            author=request.author,
            isbn=isbn if isbn is not None else request.isbn,
            category=request.category,
            price=request.price,
            published_date=request.published_date,
            cover_image_url=request.cover_image_url or None,
            is_available=request.stock_quantity > 0,
            stock_quantity=request.stock_quantity,
            created_at=now or datetime.now(timezone.utc),
            updated_at=None,
        )


@dataclass(frozen=True)
class Profile:
    """Display view of a catalog item. Computed on every read, never stored."""

    id: str
    title: str
    author: str
    isbn: str
    category_display_name: str
    price: Decimal
    formatted_price: str
    published_date: date
    created_at: datetime
    cover_image_url: Optional[str]
    is_available: bool
    stock_quantity: int
    published_age: str
    author_initials: str
    availability_status: str


@dataclass(frozen=True)
class Violation:
    """A single failed rule."""

    rule: str
    tier: RuleTier
    message: str


@dataclass
class ValidationOutcome:
    """Result of evaluating a create request"""

    ok: bool
    violations: list[Violation] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Violation messages in rule declaration order."""
        return [v.message for v in self.violations]
