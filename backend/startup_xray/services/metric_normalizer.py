"""Metric Normalizer.

Converts heterogeneous numeric expressions from oracle output
("$1.2 billion", "500M", "1,200 employees", 0.23) into one canonical unit
per metric.

Rules
-----
- NO API calls
- NO exceptions: every function is total
- Unparseable input → None (unknown), never 0
- Money is canonical in millions of USD; market size in billions
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Optional

from ..constants import MONEY_UNIT_PATTERN, MONEY_UNIT_TO_MILLIONS

_NUMBER_RE = re.compile(r"-?\d[\d,_]*(?:\.\d+)?|-?\.\d+")
_MONEY_RE = re.compile(
    rf"\$?\s*(?P<value>\d[\d,]*(?:\.\d+)?)\s*(?P<unit>{MONEY_UNIT_PATTERN})?\b",
    re.IGNORECASE,
)

_EARLIEST_FOUNDING_YEAR = 1800


def to_number(raw: Any) -> Optional[float]:
    """Coerce a JSON scalar or loose string to float. Returns None on failure.

    Booleans, NaN and infinities are treated as unparseable.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if isinstance(raw, str):
        match = _NUMBER_RE.search(raw)
        if match is None:
            return None
        try:
            value = float(match.group(0).replace(",", "").replace("_", ""))
        except ValueError:
            return None
        return value if math.isfinite(value) else None
    return None


def unit_multiplier(unit: Optional[str]) -> Optional[float]:
    """Map a unit word to its multiplier into millions; None when absent or unrecognised."""
    if not unit or not isinstance(unit, str):
        return None
    return MONEY_UNIT_TO_MILLIONS.get(unit.strip().lower().rstrip("."))


def normalize_money(value: Any, unit: Optional[str] = None) -> Optional[float]:
    """Scale a money amount into millions.

    billion ×1000, trillion ×1,000,000. A missing or unrecognised unit passes
    the number through unscaled; prompts always ask for an explicit unit.
    """
    number = to_number(value)
    if number is None:
        return None
    multiplier = unit_multiplier(unit)
    if multiplier is None:
        return number
    return number * multiplier


def split_money_text(text: str) -> tuple[Optional[float], Optional[str]]:
    """Split "$1.2 billion" into (1.2, "billion"). Unit is None when not stated."""
    match = _MONEY_RE.search(text or "")
    if match is None:
        return None, None
    return to_number(match.group("value")), match.group("unit")


def parse_money_text(text: Any) -> Optional[float]:
    """Parse "$2.5B", "$1.2 billion", "500M", "120 mn" into millions."""
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return normalize_money(text)
    if not isinstance(text, str):
        return None
    value, unit = split_money_text(text)
    return normalize_money(value, unit)


def normalize_market_size(value: Any, unit: Optional[str] = None) -> Optional[float]:
    """Scale a market size into billions. Unit-less values pass through as billions."""
    number = to_number(value)
    if number is None:
        return None
    multiplier = unit_multiplier(unit)
    if multiplier is None:
        return number
    return number * multiplier / 1_000.0


def normalize_ratio(value: Any) -> Optional[float]:
    """Return a percentage on the 0-100 scale.

    Values with magnitude ≤ 1 are read as fractions (0.23 → 23, -0.1 → -10);
    larger values are taken as already being percentages (45 → 45).
    """
    number = to_number(value)
    if number is None:
        return None
    if abs(number) <= 1:
        return number * 100.0
    return number


def normalize_employee_count(raw: Any) -> Optional[int]:
    """Parse a headcount, stripping thousands separators and underscores."""
    number = to_number(raw)
    if number is None or number < 0:
        return None
    return int(round(number))


def normalize_year(raw: Any) -> Optional[int]:
    """Accept a plausible four-digit founding year, otherwise unknown."""
    number = to_number(raw)
    if number is None:
        return None
    year = int(number)
    if year != number or not _EARLIEST_FOUNDING_YEAR <= year <= date.today().year + 1:
        return None
    return year
