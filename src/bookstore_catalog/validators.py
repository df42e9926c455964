# Field validators
# Pure, stateless predicates over single request fields. The rule table in
# rules.py combines them with messages and applicability conditions.

import calendar
import posixpath
from datetime import date
from urllib.parse import urlsplit

from bookstore_catalog.config_loader import (
    AUTHOR_PATTERN,
    BLOCKED_TITLE_WORDS,
    RESTRICTED_CHILDREN_WORDS,
    TECHNICAL_KEYWORDS,
    TITLE_SEPARATORS,
    VALID_IMAGE_EXTENSIONS,
    VALID_IMAGE_SCHEMES,
    VALID_ISBN_LENGTHS,
)

_SEPARATOR_TABLE = str.maketrans({ch: " " for ch in TITLE_SEPARATORS})


# ===== Text helpers =====


def is_blank(value: str | None) -> bool:
    """True for None, empty, or whitespace-only strings."""
    return value is None or not value.strip()


def tokenize_title(title: str) -> list[str]:
    """Split a title into lower-cased words on space and punctuation.

    Separators are the characters in ``TITLE_SEPARATORS``; empty fragments
    are dropped.
    """
    return [token.lower() for token in title.translate(_SEPARATOR_TABLE).split(" ") if token]


def _contains_any(title: str, words: frozenset[str]) -> bool:
    return any(token in words for token in tokenize_title(title))


# ===== Title =====


def is_clean_title(title: str) -> bool:
    """No title word is on the general blocklist."""
    return not _contains_any(title, BLOCKED_TITLE_WORDS)


def has_technical_keyword(title: str) -> bool:
    """At least one title word is a technical keyword."""
    return _contains_any(title, TECHNICAL_KEYWORDS)


def is_child_appropriate_title(title: str) -> bool:
    """No title word is restricted for children or on the general blocklist."""
    return not _contains_any(title, RESTRICTED_CHILDREN_WORDS | BLOCKED_TITLE_WORDS)


# ===== Author =====


def is_valid_author_name(author: str) -> bool:
    """Only letters, whitespace, hyphens, apostrophes and dots."""
    return AUTHOR_PATTERN.match(author) is not None


# ===== ISBN =====


def normalize_isbn(isbn: str | None) -> str:
    """Canonical ISBN form: all whitespace and hyphens removed."""
    if not isbn:
        return ""
    return "".join(ch for ch in isbn if not ch.isspace() and ch != "-")


def is_valid_isbn(isbn: str) -> bool:
    """Exactly 10 or 13 ASCII digits once normalized.

    No checksum is computed.
    """
    normalized = normalize_isbn(isbn)
    return (
        len(normalized) in VALID_ISBN_LENGTHS
        and normalized.isascii()
        and normalized.isdigit()
    )


# ===== Cover image =====


def is_valid_image_url(url: str | None) -> bool:
    """Absolute http(s) URL whose path ends with an image extension.

    Empty values pass: the field is optional.
    """
    if not url:
        return True
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    if parts.scheme.lower() not in VALID_IMAGE_SCHEMES or not parts.netloc:
        return False
    extension = posixpath.splitext(parts.path)[1].lower()
    return extension in VALID_IMAGE_EXTENSIONS


# ===== Dates =====


def years_before(day: date, years: int) -> date:
    """The same calendar day ``years`` earlier (Feb 29 falls back to Feb 28)."""
    target_year = day.year - years
    if day.month == 2 and day.day == 29 and not calendar.isleap(target_year):
        return date(target_year, 2, 28)
    return day.replace(year=target_year)


def is_published_within(published: date, today: date, years: int) -> bool:
    """``published`` is on or after the cutoff ``years`` before ``today``."""
    return published >= years_before(today, years)
