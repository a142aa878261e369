"""Centralized constants shared across the prompt builder, parsers and charts.

This module is the SINGLE SOURCE OF TRUTH for section keys, heading
synonyms, money units and chart ceilings. Reused by:
  - Prompt Builder (heading titles, metric phrasing)
  - Response Parser (heading matching, competitor stopwords)
  - Presentation Adapter (radar ceilings, table labels)
"""

from __future__ import annotations

# ── Analysis sections ───────────────────────────────────────────────────
# Canonical order. Display order and prompt order both follow this list,
# never the order the oracle happened to emit.

ANALYSIS_SECTION_KEYS: list[str] = [
    "overview",
    "market_opportunity",
    "competitive_landscape",
    "business_model",
    "team_assessment",
    "risks_and_challenges",
    "investment_potential",
]

SECTION_TITLES: dict[str, str] = {
    "overview": "Overview",
    "market_opportunity": "Market Opportunity",
    "competitive_landscape": "Competitive Landscape",
    "business_model": "Business Model",
    "team_assessment": "Team Assessment",
    "risks_and_challenges": "Risks and Challenges",
    "investment_potential": "Investment Potential",
}

# Ordered synonym patterns per key. Multi-word patterns across all keys are
# tried before single-word ones, so "Market Risks" is a risk heading; within
# a tier the first matching pattern wins.
# Each pattern is matched at the start of the heading, case-insensitively,
# after an optional leading ordinal ("2. ", "3) ").
SECTION_SYNONYMS: dict[str, list[str]] = {
    "overview": [r"overview", r"company overview", r"founder overview", r"summary", r"background"],
    "market_opportunity": [r"market opportunity", r"market size", r"market"],
    "competitive_landscape": [r"competitive landscape", r"\w+ competition", r"competiti", r"competitors?"],
    "business_model": [r"business model", r"business", r"revenue model", r"monetiz"],
    "team_assessment": [r"team assessment", r"team", r"leadership", r"founders?", r"traction"],
    "risks_and_challenges": [r"risks and challenges", r"\w+ risks?\b", r"risks?", r"challenges"],
    "investment_potential": [r"investment potential", r"investment", r"investor", r"track record"],
}

# ── Money units ─────────────────────────────────────────────────────────
# Multipliers into the canonical unit (millions of USD).
MONEY_UNIT_TO_MILLIONS: dict[str, float] = {
    "million": 1.0,
    "millions": 1.0,
    "mn": 1.0,
    "mm": 1.0,
    "m": 1.0,
    "billion": 1_000.0,
    "billions": 1_000.0,
    "bn": 1_000.0,
    "b": 1_000.0,
    "trillion": 1_000_000.0,
    "trillions": 1_000_000.0,
    "tn": 1_000_000.0,
    "t": 1_000_000.0,
}

# Regex alternation for unit words, longest first so "billion" beats "b".
MONEY_UNIT_PATTERN = r"(?:trillions?|billions?|millions?|tn|bn|mn|mm|T|B|M)"

# ── Competitor extraction ───────────────────────────────────────────────
MAX_COMPETITORS = 5

COMPETITOR_STOPWORDS: frozenset[str] = frozenset({
    # Articles / pronouns / connectives that get capitalised at sentence start
    "the", "a", "an", "and", "or", "but", "its", "it", "their", "they", "this",
    "these", "those", "while", "with", "in", "on", "of", "for", "as", "at", "by",
    "other", "key", "main", "major", "some", "many", "both", "also", "however",
    # Section / analysis vocabulary
    "overview", "market", "markets", "opportunity", "competition", "competitive",
    "landscape", "competitor", "competitors", "business", "model", "team",
    "risks", "risk", "challenges", "investment", "potential", "revenue",
    "growth", "funding", "valuation", "series", "seed", "ipo", "ceo", "cto",
    "founder", "founders", "startup", "startups", "company", "companies",
    # Geography / time
    "us", "usa", "u.s", "uk", "eu", "europe", "asia", "north", "america",
    "global", "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
    # Generic tech nouns
    "ai", "saas", "api", "apis", "b2b", "b2c",
})

# ── Presentation ────────────────────────────────────────────────────────
# Reference ceilings for the normalized (0-100) radar chart.
RADAR_CEILINGS: dict[str, float] = {
    "funding_amount_millions": 500.0,
    "valuation_millions": 2_000.0,
    "employee_count": 1_000.0,
    "revenue_millions": 500.0,
    "growth_rate_percent": 100.0,
    "market_share_percent": 100.0,
}

RADAR_LABELS: dict[str, str] = {
    "funding_amount_millions": "Funding",
    "valuation_millions": "Valuation",
    "employee_count": "Team Size",
    "revenue_millions": "Revenue",
    "growth_rate_percent": "Growth",
    "market_share_percent": "Market Share",
}

# A subject needs this many known radar metrics before a radar is drawn.
RADAR_MIN_KNOWN_METRICS = 3

NOT_AVAILABLE = "N/A"

SUBJECT_COLORS: list[tuple[str, str]] = [
    ("rgba(59, 130, 246, 0.5)", "rgb(59, 130, 246)"),   # blue
    ("rgba(239, 68, 68, 0.5)", "rgb(239, 68, 68)"),     # red
]
REST_OF_MARKET_COLOR = ("rgba(203, 213, 225, 0.5)", "rgb(148, 163, 184)")
