"""Projection of a stored catalog item into its display profile.

``project`` is a fixed composition of small pure field functions. It never
fails for a valid item and has no side effects; the evaluation date and the
price format are explicit inputs so output is deterministic.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from bookstore_catalog.state import CatalogItem, Category, Profile, quantize_cents

CHILDREN_DISCOUNT = Decimal("0.9")

CATEGORY_DISPLAY_NAMES: dict[Category, str] = {
    Category.FICTION: "Fiction & Literature",
    Category.NON_FICTION: "Non-Fiction",
    Category.TECHNICAL: "Technical & Professional",
    Category.CHILDREN: "Children's Books",
}
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class PriceFormat:
    """Currency rendering: symbol prefix, grouped thousands, two decimals."""

    symbol: str = "$"
    group_separator: str = ","
    decimal_separator: str = "."


DEFAULT_PRICE_FORMAT = PriceFormat()


def round_currency(amount: Decimal) -> Decimal:
    """Quantize to cents with banker's rounding (ROUND_HALF_EVEN)."""
    return quantize_cents(amount)


def discounted_price(item: CatalogItem) -> Decimal:
    """Children's books are shown at 90% of the stored price."""
    if Category.parse(item.category) is Category.CHILDREN:
        return round_currency(item.price * CHILDREN_DISCOUNT)
    return item.price


def visible_cover_image(item: CatalogItem) -> Optional[str]:
    """Children's books never expose a cover image URL."""
    if Category.parse(item.category) is Category.CHILDREN:
        return None
    return item.cover_image_url


def category_display_name(category: Category | str) -> str:
    parsed = Category.parse(category)
    if parsed is None:
        # Only reachable with a raw value from outside the enum
        return UNCATEGORIZED
    return CATEGORY_DISPLAY_NAMES[parsed]


def format_price(amount: Decimal, fmt: PriceFormat = DEFAULT_PRICE_FORMAT) -> str:
    """Render ``amount`` as e.g. ``$1,234.50`` using ``fmt``."""
    text = f"{round_currency(amount):,.2f}"
    whole, _, fraction = text.partition(".")
    whole = whole.replace(",", fmt.group_separator)
    return f"{fmt.symbol}{whole}{fmt.decimal_separator}{fraction}"


def published_age(published: date, today: date) -> str:
    """Bucket the age of a publication by whole calendar days."""
    days = (today - published).days
    if days < 30:
        return "New Release"
    if days < 365:
        return f"{days // 30} months old"
    if days < 1825:
        return f"{days // 365} years old"
    return "Classic"


def author_initials(author: Optional[str]) -> str:
    parts = (author or "").split()
    if not parts:
        return "?"
    if len(parts) == 1:
        return parts[0][0].upper()
    return f"{parts[0][0].upper()}{parts[-1][0].upper()}"


def availability_status(is_available: bool, stock_quantity: int) -> str:
    """The frozen availability flag wins over the current stock count."""
    if not is_available:
        return "Out of Stock"
    if stock_quantity <= 0:
        return "Unavailable"
    if stock_quantity == 1:
        return "Last Copy"
    if stock_quantity <= 5:
        return "Limited Stock"
    return "In Stock"


def project(
    item: CatalogItem,
    *,
    today: Optional[date] = None,
    price_format: PriceFormat = DEFAULT_PRICE_FORMAT,
) -> Profile:
    """Build the display profile for ``item``.

    Args:
        item: A persisted catalog item.
        today: Evaluation date for the published-age bucket; defaults to the
            current UTC date.
        price_format: Currency rendering for ``formatted_price``.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()
    price = discounted_price(item)
    return Profile(
        id=item.id,
        title=item.title,
        author=item.author,
        isbn=item.isbn,
        category_display_name=category_display_name(item.category),
        price=price,
        formatted_price=format_price(price, price_format),
        published_date=item.published_date,
        created_at=item.created_at,
        cover_image_url=visible_cover_image(item),
        is_available=item.is_available,
        stock_quantity=item.stock_quantity,
        published_age=published_age(item.published_date, today),
        author_initials=author_initials(item.author),
        availability_status=availability_status(item.is_available, item.stock_quantity),
    )
