"""Validation constants for the create-book rules.

Loaded by ``bookstore_catalog.config_loader``. Edit the word lists here to
tune content screening without touching the engine.
"""

import re
from decimal import Decimal

# ===== Content screening word sets (compared case-insensitively) =====

BLOCKED_TITLE_WORDS = {"inappropriate1", "inappropriate2", "badword"}

RESTRICTED_CHILDREN_WORDS = {"violence", "scary", "adult"}

TECHNICAL_KEYWORDS = {
    "technology", "software", "hardware", "programming", "engineering",
    "development", "cloud", "data", "ai", "machine",
}

# Characters that separate title tokens
TITLE_SEPARATORS = " -.,;:!?"


# ===== Field constraints =====

TITLE_MAX_LENGTH = 200
AUTHOR_MIN_LENGTH = 2
AUTHOR_MAX_LENGTH = 100
AUTHOR_PATTERN = re.compile(r"^[A-Za-z\s\-'.]+$")

VALID_ISBN_LENGTHS = {10, 13}

PRICE_MAX_EXCLUSIVE = Decimal("10000")

EARLIEST_PUBLISHED_YEAR = 1400

STOCK_MAX = 100_000

VALID_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
VALID_IMAGE_SCHEMES = {"http", "https"}


# ===== Category policy =====

TECHNICAL_MIN_PRICE = Decimal("20.00")
TECHNICAL_MAX_AGE_YEARS = 5
CHILDREN_MAX_PRICE = Decimal("50.00")
FICTION_AUTHOR_MIN_LENGTH = 5


# ===== Cross-field / aggregate policy =====

EXPENSIVE_PRICE = Decimal("100")
EXPENSIVE_MAX_STOCK = 20
HIGH_VALUE_PRICE = Decimal("500")
HIGH_VALUE_MAX_STOCK = 10

DAILY_CREATION_LIMIT = 500
