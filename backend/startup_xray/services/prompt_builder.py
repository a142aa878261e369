"""Prompt templates for the analysis and comparison oracle calls.

No I/O. The wording here is a contract with the Response Parser:
  - single analyses ask for one ``## `` heading per section, in canonical order
  - metrics-bearing prompts spell out the exact phrase for every metric
  - comparisons ask for one fenced JSON block keyed by the two names
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

from ..constants import ANALYSIS_SECTION_KEYS, SECTION_TITLES
from ..exceptions import InvalidSubjectError
from ..schemas.subject_schema import AnalysisRequestMode, AnalysisSubject, ComparisonPair


@dataclass(frozen=True)
class PromptBundle:
    system_message: str
    user_message: str
    mode: AnalysisRequestMode
    metrics_bearing: bool


ANALYST_SYSTEM_MESSAGE = (
    "You are an expert venture capital analyst with deep knowledge of startups, "
    "founders, and investment trends. Provide detailed, insightful analysis based "
    "on publicly available information. You ALWAYS follow the exact output format "
    "requested."
)

COMPARISON_SYSTEM_MESSAGE = (
    "You are a VC analyst expert at providing concise, insightful comparisons of "
    "businesses. You ALWAYS follow the EXACT format requested for metrics, using "
    "estimates when necessary rather than leaving a metric out."
)

# What each section should cover, per subject kind.
_STARTUP_FOCUS: dict[str, str] = {
    "overview": "what they do and current status",
    "market_opportunity": "market size and growth",
    "competitive_landscape": "key competitors and advantages",
    "business_model": "revenue streams",
    "team_assessment": "founders and key executives",
    "risks_and_challenges": "major challenges",
    "investment_potential": "investment potential",
}

_FOUNDER_FOCUS: dict[str, str] = {
    "overview": "background and ventures",
    "market_opportunity": "markets their startups target",
    "competitive_landscape": "competitive positioning",
    "business_model": "how their ventures monetize",
    "team_assessment": "{founder}'s leadership style",
    "risks_and_challenges": "challenges their ventures face",
    "investment_potential": "track record with investors",
}

# Exact phrasing the heuristic extractor looks for, grouped by the section
# the sentence belongs in.
_METRIC_PHRASES: dict[str, list[str]] = {
    "overview": [
        "State the founding year as 'Founded in YYYY'.",
        "State the headcount as 'has N employees'.",
    ],
    "market_opportunity": [
        "State the market size as 'market size of $X billion' (use million/billion/trillion explicitly).",
        "State the growth as 'growing at X% annually'.",
        "State the market share as 'market share of X%'.",
    ],
    "competitive_landscape": [
        "Name the main competitors as 'Competitors include A, B, C'.",
    ],
    "business_model": [
        "State revenue as 'annual revenue of $X million' (use million/billion explicitly).",
    ],
    "investment_potential": [
        "State total funding as 'has raised $X million in funding' (use million/billion explicitly).",
        "State the valuation as 'valued at $X billion' (use million/billion/trillion explicitly).",
    ],
}

_FORMAT_RULES = (
    "FORMAT RULES — you MUST follow all of these:\n"
    "1. Emit exactly one level-2 markdown heading ('## Title') per section, in the order listed.\n"
    "2. Put 3 bullet points ('- ') directly under each heading. No prose between a heading and its bullets.\n"
    "3. Keep each bullet point under 25 words. Be direct and factual.\n"
    "4. Do not add any other headings."
)

_ESTIMATE_RULE = (
    "If exact figures are not publicly known, give your best estimate using the exact "
    "phrase anyway and mark it '(est.)'. Never omit a requested metric."
)

# Keys of each per-company object in the comparison JSON block.
COMPARISON_JSON_FIELDS: list[tuple[str, str]] = [
    ("foundingYear", "YYYY"),
    ("funding", "X"),
    ("fundingUnit", '"million" or "billion"'),
    ("valuation", "X"),
    ("valuationUnit", '"million", "billion" or "trillion"'),
    ("employees", "X"),
    ("revenue", "X"),
    ("revenueUnit", '"million" or "billion"'),
    ("growthRate", "X (annual %, e.g. 23 for 23%)"),
    ("marketShare", "X (%, e.g. 12 for 12%)"),
    ("marketSize", "X"),
    ("marketSizeUnit", '"billion" or "trillion"'),
    ("competitors", '["Name", "Name"]'),
]


def _section_heading(key: str, subject: AnalysisSubject) -> str:
    if key == "team_assessment" and subject.kind == "founder":
        return "Leadership"
    return SECTION_TITLES[key]


def _subject_phrase(subject: AnalysisSubject) -> str:
    if subject.kind == "startup_with_founder":
        return f'startup "{subject.startup_name}" founded by "{subject.founder_name}"'
    if subject.kind == "startup":
        return f'startup "{subject.startup_name}"'
    return f'founder "{subject.founder_name}"'


def _section_focus(key: str, subject: AnalysisSubject) -> str:
    if subject.kind == "founder":
        return _FOUNDER_FOCUS[key].format(founder=subject.founder_name)
    if key == "team_assessment" and subject.kind == "startup_with_founder":
        return f"{subject.founder_name} and leadership"
    return _STARTUP_FOCUS[key]


def _build_single_analysis(subject: AnalysisSubject) -> PromptBundle:
    lines = [f"Analyze {_subject_phrase(subject)} in bullet points.", "", "SECTIONS (in this order):"]
    for key in ANALYSIS_SECTION_KEYS:
        lines.append(f"## {_section_heading(key, subject)}")
        lines.append(f"   3 bullet points on {_section_focus(key, subject)}.")
        if subject.metrics_bearing:
            for phrase in _METRIC_PHRASES.get(key, []):
                lines.append(f"   {phrase}")
    lines.extend(["", _FORMAT_RULES])
    if subject.metrics_bearing:
        lines.extend(["", _ESTIMATE_RULE])
    lines.append("Use inline citations like [1], [2] for facts taken from sources.")

    return PromptBundle(
        system_message=ANALYST_SYSTEM_MESSAGE,
        user_message="\n".join(lines),
        mode=AnalysisRequestMode.SINGLE_ANALYSIS,
        metrics_bearing=subject.metrics_bearing,
    )


def _json_template_for(name: str) -> str:
    body = ",\n".join(f'    "{field}": {placeholder}' for field, placeholder in COMPARISON_JSON_FIELDS)
    return f"  {json.dumps(name)}: {{\n{body}\n  }}"


def _build_comparison(pair: ComparisonPair) -> PromptBundle:
    template = "{\n" + ",\n".join(_json_template_for(n) for n in pair.names) + "\n}"
    user_message = (
        f"Compare these two companies: {pair.first} and {pair.second}.\n\n"
        "CRITICAL: Your response MUST include a machine-readable metrics section in JSON format.\n\n"
        "Begin with a brief overview of both companies (2-3 sentences each).\n\n"
        "Then include exactly ONE fenced code block tagged json with this structure:\n\n"
        f"```json\n{template}\n```\n\n"
        "Rules for the JSON block:\n"
        f"- The two top-level keys MUST be exactly {json.dumps(pair.first)} and {json.dumps(pair.second)}, "
        "spelled as given (keys are matched case-insensitively).\n"
        "- Every field is required. Numbers must be plain JSON numbers without currency "
        "symbols, commas or words.\n"
        "- Every money and market-size value MUST have its unit field set.\n"
        f"- {_ESTIMATE_RULE}\n\n"
        "After the JSON block, write at most 3 sentences highlighting the key differences "
        "between the two companies."
    )
    return PromptBundle(
        system_message=COMPARISON_SYSTEM_MESSAGE,
        user_message=user_message,
        mode=AnalysisRequestMode.COMPARISON,
        metrics_bearing=True,
    )


def build_prompt(
    subject: Union[AnalysisSubject, ComparisonPair],
    mode: AnalysisRequestMode,
) -> PromptBundle:
    """Build the system + user messages for one oracle call.

    Raises InvalidSubjectError if the subject carries no name or does not
    fit the requested mode.
    """
    if mode == AnalysisRequestMode.COMPARISON:
        if not isinstance(subject, ComparisonPair):
            raise InvalidSubjectError("Comparison requires exactly two business names")
        return _build_comparison(subject)

    if not isinstance(subject, AnalysisSubject) or not subject.own_names:
        raise InvalidSubjectError("Either startup name or founder name is required")
    return _build_single_analysis(subject)
