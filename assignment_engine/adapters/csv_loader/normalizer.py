"""CSV value normalization — column names, booleans, numbers, blank cells."""

from __future__ import annotations

import re

_TRUE = {"true", "t", "yes", "y", "1", "x"}
_FALSE = {"false", "f", "no", "n", "0"}


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff)
    - Replaces spaces, dashes, dots and non-breaking spaces with a single underscore
    - Lowercases
    - Strips anything that is not alphanumeric or underscore
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0\-.]+", "_", name)
    name = name.lower()
    name = re.sub(r"[^\w]", "", name, flags=re.UNICODE)
    return name.strip("_")


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def parse_money(value: str | None) -> float:
    """Parse amounts like "$1,200,000", "1 200 000,50" or "950000"."""
    if not value:
        return 0.0
    v = value.strip().replace("$", "").replace("\u00a0", "").replace(" ", "")
    if v.count(",") == 1 and "." not in v and len(v.split(",")[1]) != 3:
        v = v.replace(",", ".")  # decimal comma
    else:
        v = v.replace(",", "")
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Not a number: {value!r}") from None


def parse_int(value: str | None) -> int:
    if not value:
        return 0
    # handle "4", "4.0"
    return int(parse_money(value))
