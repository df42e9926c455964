"""Loads the rule constants from an external Python file in config/.

Keeping the word lists and thresholds out of the package lets operators tune
content screening without a release. Uses importlib to load the .py file by
path, so no YAML/JSON dependency is needed.
"""

import importlib.util
import os
import re
import sys
from decimal import Decimal
from pathlib import Path
from types import ModuleType


def _find_config_dir() -> Path:
    """Find the config directory, checking source tree and PROJECT_ROOT env."""
    # Try source tree layout first (config/ at repo root)
    source_dir = Path(__file__).parent.parent.parent / "config"
    if source_dir.exists():
        return source_dir
    # Fall back to PROJECT_ROOT env var (set when installed outside the tree)
    project_root = os.environ.get("PROJECT_ROOT", "")
    if project_root:
        env_dir = Path(project_root) / "config"
        if env_dir.exists():
            return env_dir
    return source_dir  # return default even if missing


def _load_config_module(name: str) -> ModuleType:
    """Load a Python config file from config/ by module name.

    Args:
        name: Module name without .py extension (e.g. 'validation_rules')

    Returns:
        The loaded module object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
    """
    config_dir = _find_config_dir()
    file_path = config_dir / f"{name}.py"
    if not file_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {file_path}\n"
            f"Set PROJECT_ROOT to the directory that contains config/{name}.py."
        )
    spec = importlib.util.spec_from_file_location(
        f"config.{name}", str(file_path)
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load config module: {file_path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


# ===== Load and re-export validation_rules =====
_vr = _load_config_module("validation_rules")

BLOCKED_TITLE_WORDS: frozenset[str] = frozenset(w.lower() for w in _vr.BLOCKED_TITLE_WORDS)
RESTRICTED_CHILDREN_WORDS: frozenset[str] = frozenset(
    w.lower() for w in _vr.RESTRICTED_CHILDREN_WORDS
)
TECHNICAL_KEYWORDS: frozenset[str] = frozenset(w.lower() for w in _vr.TECHNICAL_KEYWORDS)
TITLE_SEPARATORS: str = _vr.TITLE_SEPARATORS

TITLE_MAX_LENGTH: int = _vr.TITLE_MAX_LENGTH
AUTHOR_MIN_LENGTH: int = _vr.AUTHOR_MIN_LENGTH
AUTHOR_MAX_LENGTH: int = _vr.AUTHOR_MAX_LENGTH
AUTHOR_PATTERN: re.Pattern = _vr.AUTHOR_PATTERN

VALID_ISBN_LENGTHS: set[int] = _vr.VALID_ISBN_LENGTHS
PRICE_MAX_EXCLUSIVE: Decimal = _vr.PRICE_MAX_EXCLUSIVE
EARLIEST_PUBLISHED_YEAR: int = _vr.EARLIEST_PUBLISHED_YEAR
STOCK_MAX: int = _vr.STOCK_MAX
VALID_IMAGE_EXTENSIONS: tuple[str, ...] = _vr.VALID_IMAGE_EXTENSIONS
VALID_IMAGE_SCHEMES: set[str] = _vr.VALID_IMAGE_SCHEMES

TECHNICAL_MIN_PRICE: Decimal = _vr.TECHNICAL_MIN_PRICE
TECHNICAL_MAX_AGE_YEARS: int = _vr.TECHNICAL_MAX_AGE_YEARS
CHILDREN_MAX_PRICE: Decimal = _vr.CHILDREN_MAX_PRICE
FICTION_AUTHOR_MIN_LENGTH: int = _vr.FICTION_AUTHOR_MIN_LENGTH

EXPENSIVE_PRICE: Decimal = _vr.EXPENSIVE_PRICE
EXPENSIVE_MAX_STOCK: int = _vr.EXPENSIVE_MAX_STOCK
HIGH_VALUE_PRICE: Decimal = _vr.HIGH_VALUE_PRICE
HIGH_VALUE_MAX_STOCK: int = _vr.HIGH_VALUE_MAX_STOCK

DAILY_CREATION_LIMIT: int = _vr.DAILY_CREATION_LIMIT
