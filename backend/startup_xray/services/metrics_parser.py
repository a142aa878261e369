"""Metrics extraction from oracle text.

Priority order:
  1. Structured extraction — a fenced (optionally json-tagged) block or a
     bare ``{...}`` span, keyed by subject name.
  2. Heuristic extraction — ordered regex alternatives per field, single
     subject only. Best-effort with no accuracy guarantee: misses leave the
     field unknown, nothing here raises.

Comparisons never fall back to heuristics; when the structured path yields
nothing usable they raise MetricsUnavailableError.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..constants import MONEY_UNIT_PATTERN
from ..exceptions import MalformedStructuredDataError, MetricsUnavailableError
from ..schemas.metrics_schema import BusinessMetrics, ComparisonResult
from .competitor_extractor import (
    clean_competitor_names,
    competitors_from_capitalized_words,
    competitors_from_list_phrase,
)
from .metric_normalizer import (
    normalize_employee_count,
    normalize_market_size,
    normalize_money,
    normalize_ratio,
    normalize_year,
    split_money_text,
    to_number,
)
from .section_parser import raw_section_text

logger = logging.getLogger(__name__)

# ===================================================================== #
#  Structured extraction                                                  #
# ===================================================================== #

_FENCE_RE = re.compile(r"```[ \t]*(json)?[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_ESTIMATE_NOTE_RE = re.compile(r"\s*\((?:est|estimate|estimated)\.?\)", re.IGNORECASE)
_DIGIT_UNDERSCORE_RE = re.compile(r"(?<=\d)_(?=\d)")

_MAX_BARE_CANDIDATES = 50

# JSON field aliases per BusinessMetrics field, first present alias wins.
_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "founding_year": ("foundingYear", "founding_year", "founded", "yearFounded"),
    "funding": ("funding", "totalFunding", "fundingAmount", "funding_amount_millions"),
    "valuation": ("valuation", "valuation_millions"),
    "employees": ("employees", "employeeCount", "employee_count", "headcount"),
    "revenue": ("revenue", "annualRevenue", "revenue_millions"),
    "growth_rate": ("growthRate", "growth_rate", "growth_rate_percent"),
    "market_share": ("marketShare", "market_share", "market_share_percent"),
    "market_size": ("marketSize", "market_size", "market_size_billions"),
    "competitors": ("competitors", "competition"),
}

_UNIT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "funding": ("fundingUnit", "funding_unit"),
    "valuation": ("valuationUnit", "valuation_unit"),
    "revenue": ("revenueUnit", "revenue_unit"),
    "market_size": ("marketSizeUnit", "market_size_unit"),
}

_ABSENT_MARKERS = {"", "n/a", "na", "unknown", "none", "null", "-", "?"}


@dataclass(frozen=True)
class StructuredBlock:
    data: Dict[str, Any]
    start: int
    end: int


def _clean_json_text(raw: str) -> str:
    cleaned = _CONTROL_CHARS_RE.sub("", raw)
    cleaned = _ESTIMATE_NOTE_RE.sub("", cleaned)
    cleaned = _DIGIT_UNDERSCORE_RE.sub("", cleaned)
    return _TRAILING_COMMA_RE.sub(r"\1", cleaned)


def _decode_object(raw: str) -> Dict[str, Any]:
    """Decode the first JSON object in *raw*. Raises MalformedStructuredDataError."""
    cleaned = _clean_json_text(raw)
    start = cleaned.find("{")
    if start == -1:
        raise MalformedStructuredDataError("No '{' found in structured block")
    try:
        obj, _ = json.JSONDecoder().raw_decode(cleaned[start:])
    except json.JSONDecodeError as exc:
        raise MalformedStructuredDataError(f"Invalid JSON in structured block: {exc}") from exc
    if not isinstance(obj, dict):
        raise MalformedStructuredDataError("Structured block is not a JSON object")
    return obj


def _subject_entries(obj: Dict[str, Any]) -> int:
    return sum(1 for v in obj.values() if isinstance(v, dict))


def find_structured_block(text: str, min_subjects: int = 2) -> StructuredBlock:
    """Locate the embedded metrics object.

    Fenced blocks are tried first (json-tagged before untagged), then bare
    ``{...}`` spans. A candidate qualifies when at least *min_subjects*
    top-level values are objects; ``min_subjects=0`` accepts any object.

    Raises MalformedStructuredDataError when nothing qualifies.
    """
    text = text or ""
    fences = sorted(_FENCE_RE.finditer(text), key=lambda m: m.group(1) is None)
    last_error: Optional[Exception] = None

    for match in fences:
        try:
            obj = _decode_object(match.group(2))
        except MalformedStructuredDataError as exc:
            last_error = exc
            continue
        if _subject_entries(obj) >= min_subjects:
            return StructuredBlock(obj, match.start(), match.end())

    decoder = json.JSONDecoder()
    position = text.find("{")
    tried = 0
    while position != -1 and tried < _MAX_BARE_CANDIDATES:
        tried += 1
        try:
            obj, consumed = decoder.raw_decode(_clean_json_text(text[position:]))
        except json.JSONDecodeError as exc:
            last_error = exc
        else:
            if isinstance(obj, dict) and _subject_entries(obj) >= min_subjects:
                # consumed counts cleaned characters, so the raw end is at or after it
                end = text.find("}", position + max(consumed - 1, 0))
                return StructuredBlock(obj, position, end + 1 if end != -1 else len(text))
        position = text.find("{", position + 1)

    raise MalformedStructuredDataError(f"No usable metrics object found ({last_error})")


def _compact(name: str) -> str:
    return re.sub(r"[^0-9a-z]", "", name.casefold())


def match_subject_keys(names: Sequence[str], keys: Sequence[str]) -> Dict[str, Optional[str]]:
    """Pair each input name with a JSON top-level key.

    Case-insensitive exact match first, then lowercase lookup, then a
    punctuation-insensitive match, then position (first key → first name)
    as a last resort. No key is used twice.
    """
    assigned: Dict[str, Optional[str]] = {name: None for name in names}
    used: set[str] = set()

    strategies: List[Callable[[str, str], bool]] = [
        lambda name, key: key.casefold() == name.casefold(),
        lambda name, key: key == name.lower(),
        lambda name, key: bool(_compact(name)) and _compact(key) == _compact(name),
    ]
    for same in strategies:
        for name in names:
            if assigned[name] is not None:
                continue
            for key in keys:
                if key not in used and same(name, key):
                    assigned[name] = key
                    used.add(key)
                    break

    for index, name in enumerate(names):
        if assigned[name] is not None:
            continue
        free = [k for k in keys if k not in used]
        if not free:
            break
        key = keys[index] if index < len(keys) and keys[index] not in used else free[0]
        logger.warning("[METRICS] No key matched %r, pairing positionally with %r", name, key)
        assigned[name] = key
        used.add(key)

    return assigned


def _first_present(values: Dict[str, Any], aliases: Sequence[str]) -> Any:
    lowered = {k.lower(): v for k, v in values.items() if isinstance(k, str)}
    for alias in aliases:
        value = values.get(alias, lowered.get(alias.lower()))
        if value is None:
            continue
        # Falsy values (0, "", "N/A") count as unknown
        if isinstance(value, str) and value.strip().lower() in _ABSENT_MARKERS:
            continue
        if not isinstance(value, (str, list)) and not value:
            continue
        return value
    return None


def _money_millions(value: Any, unit: Any) -> Optional[float]:
    if value is None:
        return None
    unit = unit if isinstance(unit, str) else None
    if unit is None and isinstance(value, str):
        number, stated_unit = split_money_text(value)
        return normalize_money(number, stated_unit)
    return normalize_money(value, unit)


def _market_size_billions(value: Any, unit: Any) -> Optional[float]:
    if value is None:
        return None
    unit = unit if isinstance(unit, str) else None
    if unit is None and isinstance(value, str):
        number, stated_unit = split_money_text(value)
        return normalize_market_size(number, stated_unit)
    return normalize_market_size(value, unit)


def _competitor_list(raw: Any, exclude: Sequence[str]) -> Optional[List[str]]:
    if isinstance(raw, str):
        raw = re.split(r",|;", raw)
    if not isinstance(raw, list):
        return None
    names = clean_competitor_names([c for c in raw if isinstance(c, str)], exclude)
    return names or None


def metrics_from_values(name: str, values: Any, exclude: Sequence[str] = ()) -> BusinessMetrics:
    """Normalize one subject's JSON object. Missing or odd fields stay unknown."""
    if not isinstance(values, dict):
        return BusinessMetrics(name=name)

    def field(key: str) -> Any:
        return _first_present(values, _FIELD_ALIASES[key])

    def unit(key: str) -> Any:
        return _first_present(values, _UNIT_ALIASES[key])

    return BusinessMetrics(
        name=name,
        founding_year=normalize_year(field("founding_year")),
        funding_amount_millions=_money_millions(field("funding"), unit("funding")),
        valuation_millions=_money_millions(field("valuation"), unit("valuation")),
        employee_count=normalize_employee_count(field("employees")),
        revenue_millions=_money_millions(field("revenue"), unit("revenue")),
        growth_rate_percent=normalize_ratio(field("growth_rate")),
        market_share_percent=normalize_ratio(field("market_share")),
        market_size_billions=_market_size_billions(field("market_size"), unit("market_size")),
        competitors=_competitor_list(field("competitors"), [name, *exclude]),
    )


def _narrative_after(text: str, block: StructuredBlock) -> str:
    after = text[block.end:].strip()
    if after:
        return after
    return text[: block.start].strip()


def parse_comparison_metrics(text: str, subject_names: Sequence[str]) -> ComparisonResult:
    """Structured-only extraction for two subjects.

    Raises MetricsUnavailableError when no usable two-subject object exists
    or neither subject has a single known metric.
    """
    if len(subject_names) != 2:
        raise MetricsUnavailableError("Comparison needs exactly two subject names")

    try:
        block = find_structured_block(text, min_subjects=2)
    except MalformedStructuredDataError as exc:
        logger.warning("[METRICS] Structured comparison block unusable: %s", exc)
        raise MetricsUnavailableError("No structured metrics block in comparison output") from exc

    pairing = match_subject_keys(list(subject_names), [k for k in block.data if isinstance(k, str)])
    pair = tuple(
        metrics_from_values(name, block.data.get(pairing[name]) if pairing[name] is not None else None)
        for name in subject_names
    )
    if all(m.is_empty for m in pair):
        raise MetricsUnavailableError("Structured metrics block contained no usable values")

    return ComparisonResult(subjects=pair, narrative_differences=_narrative_after(text, block))


# ===================================================================== #
#  Heuristic extraction                                                   #
# ===================================================================== #

_APPROX = r"(?:(?:a\s+total\s+of|over|more\s+than|about|approximately|around|roughly|nearly|an\s+estimated)\s+)?"
_AMOUNT = rf"\$\s?(\d[\d,]*(?:\.\d+)?)\s*({MONEY_UNIT_PATTERN})\b"
_PERCENT = r"(-?\d+(?:\.\d+)?)\s*%"
_COUNT = r"(\d[\d,]*)\+?"


@dataclass(frozen=True)
class PatternMatcher:
    """One regex alternative plus the conversion of its match into a field value."""

    pattern: re.Pattern
    convert: Callable[[re.Match], Any]

    def __call__(self, text: str) -> Any:
        match = self.pattern.search(text)
        if match is None:
            return None
        return self.convert(match)


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def _as_millions(m: re.Match) -> Optional[float]:
    return normalize_money(m.group(1), m.group(2))


def _as_billions(m: re.Match) -> Optional[float]:
    return normalize_market_size(m.group(1), m.group(2))


def _as_year(m: re.Match) -> Optional[int]:
    return normalize_year(m.group(1))


def _as_count(m: re.Match) -> Optional[int]:
    return normalize_employee_count(m.group(1))


def _as_percent(m: re.Match) -> Optional[float]:
    # Already stated with a % sign, so no fraction scaling
    return to_number(m.group(1))


HEURISTIC_MATCHERS: Dict[str, List[PatternMatcher]] = {
    "founding_year": [
        PatternMatcher(_rx(r"\bfounded\s+in\s+(\d{4})\b"), _as_year),
        PatternMatcher(_rx(r"\b(?:established|launched|started|incorporated)\s+in\s+(\d{4})\b"), _as_year),
        PatternMatcher(_rx(r"\bfounded\b[^.\n]{0,60}?\bin\s+(\d{4})\b"), _as_year),
        PatternMatcher(_rx(r"\bsince\s+(\d{4})\b"), _as_year),
    ],
    "funding_amount_millions": [
        PatternMatcher(_rx(rf"\braised\s+{_APPROX}{_AMOUNT}"), _as_millions),
        PatternMatcher(_rx(rf"\bfunding\s+(?:of|totaling|totalling|to\s+date\s+of)\s+{_APPROX}{_AMOUNT}"), _as_millions),
        PatternMatcher(_rx(rf"{_AMOUNT}\s+(?:in\s+)?(?:total\s+)?(?:funding|financing|venture\s+capital)"), _as_millions),
    ],
    "valuation_millions": [
        PatternMatcher(_rx(rf"\bvalued\s+at\s+{_APPROX}{_AMOUNT}"), _as_millions),
        PatternMatcher(_rx(rf"\bvaluation\s+(?:of|at)\s+{_APPROX}{_AMOUNT}"), _as_millions),
        PatternMatcher(_rx(rf"{_AMOUNT}\s+valuation"), _as_millions),
    ],
    "revenue_millions": [
        PatternMatcher(_rx(rf"\b(?:annual\s+)?revenues?\s+(?:of|reached|reaching|exceeding|is|was)\s+{_APPROX}{_AMOUNT}"), _as_millions),
        PatternMatcher(_rx(rf"{_AMOUNT}\s+(?:in\s+)?(?:annual\s+)?(?:revenue|ARR|sales)"), _as_millions),
        PatternMatcher(_rx(rf"\bARR\s+of\s+{_APPROX}{_AMOUNT}"), _as_millions),
    ],
    "employee_count": [
        PatternMatcher(_rx(rf"\b(?:has|have|with|employs|employing)\s+{_APPROX}{_COUNT}\s+(?:full-time\s+)?employees\b"), _as_count),
        PatternMatcher(_rx(rf"\b{_COUNT}\s+(?:full-time\s+)?employees\b"), _as_count),
        PatternMatcher(_rx(rf"\b(?:team|workforce|headcount)\s+of\s+{_APPROX}{_COUNT}"), _as_count),
    ],
    "growth_rate_percent": [
        PatternMatcher(_rx(rf"\bgrowing\s+at\s+{_APPROX}{_PERCENT}"), _as_percent),
        PatternMatcher(_rx(rf"\bgrowth\s+rate\s+of\s+{_APPROX}{_PERCENT}"), _as_percent),
        PatternMatcher(_rx(rf"\bCAGR\s+of\s+{_APPROX}{_PERCENT}"), _as_percent),
        PatternMatcher(_rx(rf"{_PERCENT}\s+CAGR"), _as_percent),
    ],
    "market_share_percent": [
        PatternMatcher(_rx(rf"\bmarket\s+share\s+of\s+{_APPROX}{_PERCENT}"), _as_percent),
        PatternMatcher(_rx(rf"{_PERCENT}\s+(?:of\s+the\s+)?market\s+share"), _as_percent),
        PatternMatcher(_rx(rf"{_PERCENT}\s+share\s+of\s+the\s+market"), _as_percent),
    ],
    "market_size_billions": [
        PatternMatcher(_rx(rf"\bmarket\s+size\s+of\s+{_APPROX}{_AMOUNT}"), _as_billions),
        PatternMatcher(_rx(rf"\bmarket\s+(?:is\s+|was\s+)?(?:valued|worth|estimated|projected|expected)\s+(?:at\s+|to\s+reach\s+)?{_APPROX}{_AMOUNT}"), _as_billions),
        PatternMatcher(_rx(rf"\bTAM\s+of\s+{_APPROX}{_AMOUNT}"), _as_billions),
        PatternMatcher(_rx(rf"{_AMOUNT}\s+(?:global\s+|total\s+addressable\s+)?market\b"), _as_billions),
    ],
}

# Looser pattern for the Market Opportunity section only: any stated amount.
_SECTION_MARKET_SIZE = PatternMatcher(_rx(_AMOUNT), _as_billions)


def _prepare_for_heuristics(text: str) -> str:
    text = re.sub(r"\[\d+\]", "", text or "")
    text = _ESTIMATE_NOTE_RE.sub("", text)
    return text.replace("**", "").replace("__", "")


def run_matchers(text: str, matchers: Sequence[PatternMatcher]) -> Any:
    """First alternative whose match converts to a value; None when all miss."""
    for matcher in matchers:
        value = matcher(text)
        if value is not None:
            return value
    return None


def extract_metrics_heuristically(
    text: str,
    subject_name: str,
    exclude: Sequence[str] = (),
) -> BusinessMetrics:
    """Best-effort regex extraction for one subject. Never raises."""
    prepared = _prepare_for_heuristics(text)
    values: Dict[str, Any] = {
        field: run_matchers(prepared, matchers) for field, matchers in HEURISTIC_MATCHERS.items()
    }

    if values["market_size_billions"] is None:
        section = _prepare_for_heuristics(raw_section_text(text, "market_opportunity"))
        values["market_size_billions"] = _SECTION_MARKET_SIZE(section) if section else None

    own_names = [subject_name, *exclude]
    competitors = competitors_from_list_phrase(prepared, own_names)
    if competitors is None:
        section = _prepare_for_heuristics(raw_section_text(text, "competitive_landscape"))
        competitors = competitors_from_capitalized_words(section, own_names) if section else None

    found = [k for k, v in values.items() if v is not None]
    print(f"🔎 [METRICS] Heuristic extraction for {subject_name}: {len(found)} fields ({', '.join(found) or 'none'})")
    return BusinessMetrics(name=subject_name, competitors=competitors, **values)


def parse_single_metrics(text: str, subject_name: str, exclude: Sequence[str] = ()) -> BusinessMetrics:
    """Structured first, heuristics when no usable object is embedded."""
    try:
        block = find_structured_block(text, min_subjects=0)
    except MalformedStructuredDataError as exc:
        logger.debug("[METRICS] No structured block, using heuristics: %s", exc)
    else:
        values: Any = block.data
        keyed = match_subject_keys([subject_name], [k for k, v in block.data.items() if isinstance(v, dict)])
        if keyed[subject_name] is not None:
            values = block.data[keyed[subject_name]]
        structured = metrics_from_values(subject_name, values, exclude)
        if not structured.is_empty:
            return structured
        logger.debug("[METRICS] Structured block had no usable values, using heuristics")

    return extract_metrics_heuristically(text, subject_name, exclude)


def parse_metrics(
    text: str,
    subject_names: Sequence[str],
    exclude: Sequence[str] = (),
):
    """Dispatch on subject count: one name → BusinessMetrics, two → ComparisonResult.

    Only the two-subject path can raise (MetricsUnavailableError).
    """
    if len(subject_names) == 2:
        return parse_comparison_metrics(text, subject_names)
    if len(subject_names) != 1:
        raise ValueError("parse_metrics expects one or two subject names")
    return parse_single_metrics(text, subject_names[0], exclude)
