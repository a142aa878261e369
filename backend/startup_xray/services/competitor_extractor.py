"""Competitor name extraction from oracle prose.

Pipeline:
  1. Explicit list phrases ("Competitors include A, B and C") over the whole text
  2. Fallback: capitalised word runs inside the Competitive Landscape section
  3. Final safety check: ≤ 5 names, ≤ 4 words each, deduped, no stopwords,
     never the subject's own name
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from ..constants import COMPETITOR_STOPWORDS, MAX_COMPETITORS

_MAX_NAME_WORDS = 4

# ── Explicit list phrases, tried in order ─────────────────────────────────
_LIST_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"competitors\s+(?:include|includes|are|such as)\s*:?\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"compet(?:es|ing)\s+(?:directly\s+)?(?:with|against)\s+([^.\n]+)", re.IGNORECASE),
    re.compile(r"rivals?\s+(?:include|such as|like)\s+([^.\n]+)", re.IGNORECASE),
)

_SPLIT_RE = re.compile(r",|;|\band\b|\bor\b|&(?=\s)", re.IGNORECASE)
_CAPITALIZED_RUN_RE = re.compile(r"\b[A-Z][A-Za-z0-9&'.-]*(?:[ \t]+[A-Z][A-Za-z0-9&'.-]*)*")
_EDGE_PUNCT = " \t\"'`*_()[]{}:;.,!?"


def _normalize_candidate(raw: str) -> str:
    name = re.sub(r"\[\d+\]", "", raw)          # citation markers
    name = re.sub(r"\(.*?\)", "", name)          # parenthetical notes
    name = name.strip(_EDGE_PUNCT)
    name = re.sub(r"^(?:the|other|companies like|players like|like)\s+", "", name, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", name).strip(_EDGE_PUNCT)


def _is_stopword_name(name: str) -> bool:
    words = name.lower().split()
    return all(w.strip(_EDGE_PUNCT) in COMPETITOR_STOPWORDS for w in words)


def _same_entity(candidate: str, own: str) -> bool:
    """Own name "stripe" also covers "Stripe Inc" and "Stripe's"."""
    if candidate == own:
        return True
    cand_words = re.sub(r"'s\b", "", candidate).split()
    own_words = own.split()
    shorter, longer = sorted((cand_words, own_words), key=len)
    return bool(shorter) and longer[: len(shorter)] == shorter


def clean_competitor_names(
    candidates: Iterable[str],
    exclude: Sequence[str] = (),
    limit: int = MAX_COMPETITORS,
) -> List[str]:
    """Dedupe (case-insensitive, order-preserving), drop stopwords and own names, cap at *limit*."""
    excluded = {e.casefold() for e in exclude if e}
    seen: set[str] = set()
    cleaned: List[str] = []

    for raw in candidates:
        if not isinstance(raw, str):
            continue
        name = _normalize_candidate(raw)
        if not name or len(name) < 2:
            continue
        if len(name.split()) > _MAX_NAME_WORDS:
            continue
        if _is_stopword_name(name):
            continue
        folded = name.casefold()
        if any(_same_entity(folded, e) for e in excluded):
            continue
        if folded in seen:
            continue
        seen.add(folded)
        cleaned.append(name)
        if len(cleaned) >= limit:
            break

    return cleaned


def competitors_from_list_phrase(text: str, exclude: Sequence[str] = ()) -> Optional[List[str]]:
    """First explicit "competitors include ..." phrase in *text*, split into names."""
    for pattern in _LIST_PATTERNS:
        match = pattern.search(text or "")
        if match is None:
            continue
        names = clean_competitor_names(_SPLIT_RE.split(match.group(1)), exclude)
        if names:
            return names
    return None


def competitors_from_capitalized_words(text: str, exclude: Sequence[str] = ()) -> Optional[List[str]]:
    """Looser fallback: any run of capitalised words, minus stopwords and own names."""
    runs = _CAPITALIZED_RUN_RE.findall(re.sub(r"\*\*|__", "", text or ""))
    names = clean_competitor_names(runs, exclude)
    return names or None
