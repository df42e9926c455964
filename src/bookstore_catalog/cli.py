#!/usr/bin/env python3
# CLI entry point for the bookstore catalog rules
# Checks a single create-book request against an optional catalog snapshot

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from bookstore_catalog.projection import project
from bookstore_catalog.rules import RuleEvaluator
from bookstore_catalog.state import CatalogItem, CreateRequest, ValidationOutcome
from bookstore_catalog.store import InMemoryCatalogStore
from bookstore_catalog.validators import normalize_isbn


def _whole_number(value) -> int:
    """Accept ints, integral floats and digit strings; reject 1.5, true, etc."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"expected an integer, got {value!r}")


def request_from_dict(data: dict) -> CreateRequest:
    """Build a CreateRequest from JSON (snake_case or camelCase keys)."""

    def pick(*keys, default=None):
        for key in keys:
            if key in data:
                return data[key]
        return default

    return CreateRequest(
        title=pick("title", default=""),
        author=pick("author", default=""),
        isbn=pick("isbn", "ISBN", default=""),
        category=pick("category", default=""),
        price=Decimal(str(pick("price", default="0"))),
        published_date=date.fromisoformat(pick("published_date", "publishedDate")[:10]),
        cover_image_url=pick("cover_image_url", "coverImageUrl"),
        stock_quantity=_whole_number(pick("stock_quantity", "stockQuantity", default=1)),
    )


def item_from_dict(data: dict) -> CatalogItem:
    """Build an existing CatalogItem from a catalog snapshot entry."""
    request = request_from_dict(data)
    created = data.get("created_at") or data.get("createdAt")
    if created:
        created_at = datetime.fromisoformat(created)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
    else:
        created_at = datetime.combine(request.published_date, time.min, tzinfo=timezone.utc)
    item = CatalogItem.from_request(request, now=created_at, isbn=normalize_isbn(request.isbn))
    if "id" in data:
        item.id = str(data["id"])
    if "is_available" in data:
        item.is_available = bool(data["is_available"])
    return item


async def check_request(
    request: CreateRequest,
    catalog: list[CatalogItem],
    now: datetime,
) -> tuple[ValidationOutcome, dict | None]:
    """Evaluate ``request``; on success return the profile it would get."""
    store = InMemoryCatalogStore(catalog)
    outcome = await RuleEvaluator(store, clock=lambda: now).evaluate(request)
    if not outcome.ok:
        return outcome, None
    item = CatalogItem.from_request(request, now=now, isbn=normalize_isbn(request.isbn))
    profile = project(item, today=now.date())
    return outcome, asdict(profile)


def _load_json(path: str):
    file_path = Path(path)
    if not file_path.exists():
        print(f"Error: File not found: {path}")
        sys.exit(2)
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {path}: {e}")
        sys.exit(2)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="bookstore-catalog",
        description="Validate a create-book request and preview its profile",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Evaluate a request JSON file")
    check.add_argument("request", help="Path to the create-book request JSON")
    check.add_argument(
        "--catalog",
        help="Path to a JSON list of existing catalog items (uniqueness and daily limit)",
    )
    check.add_argument(
        "--today",
        help="Evaluation date (YYYY-MM-DD, UTC). Defaults to now.",
    )

    args = parser.parse_args(argv)

    if args.today:
        try:
            now = datetime.combine(date.fromisoformat(args.today), time(12), tzinfo=timezone.utc)
        except ValueError:
            print(f"Error: --today must be YYYY-MM-DD, got {args.today!r}")
            sys.exit(2)
    else:
        now = datetime.now(timezone.utc)

    try:
        request = request_from_dict(_load_json(args.request))
        catalog = [item_from_dict(entry) for entry in _load_json(args.catalog)] if args.catalog else []
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        print(f"Error: Malformed input: {e}")
        sys.exit(2)

    outcome, profile = asyncio.run(check_request(request, catalog, now))

    if not outcome.ok:
        print("Validation failed:")
        for message in outcome.errors:
            print(f"  - {message}")
        sys.exit(1)

    print(json.dumps(profile, indent=2, default=str, ensure_ascii=False))
    sys.exit(0)


if __name__ == "__main__":
    main()
