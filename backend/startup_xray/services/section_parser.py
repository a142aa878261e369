"""Split oracle markdown into canonical analysis sections.

Pipeline:
  1. Split on level-2 headings (``## Title``)
  2. First non-empty line of each chunk is the heading, the rest is content
  3. Reformat content lines (bullets, bold, citation links)
  4. Match headings to section keys via ordered synonym patterns
  5. Emit every canonical key, "" for sections the oracle left out
"""

from __future__ import annotations

import html
import logging
import re
from typing import Dict, List, Optional, Sequence

from ..constants import ANALYSIS_SECTION_KEYS, SECTION_SYNONYMS

logger = logging.getLogger(__name__)

BULLET = "•"

_HEADING_SPLIT_RE = re.compile(r"^[ \t]*##(?!#)[ \t]*", re.MULTILINE)
_ORDINAL_PREFIX = r"(?:\d+\s*[.):]\s*)?"
_BULLET_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-–—*•])\s+")
_SUBHEADING_RE = re.compile(r"^#{3,}\s*")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*|__(.+?)__")
_CITATION_RE = re.compile(r"\[(\d+)\]")


def _clean_heading(line: str) -> str:
    heading = line.strip().strip("#").strip()
    heading = heading.replace("**", "").replace("__", "")
    return heading.rstrip(":").strip()


def _synonym_patterns(section_keys: Sequence[str]) -> List[tuple[str, str]]:
    pairs = [(key, pattern) for key in section_keys for pattern in SECTION_SYNONYMS.get(key, [])]
    specific = [(key, pattern) for key, pattern in pairs if " " in pattern]
    return specific + [(key, pattern) for key, pattern in pairs if " " not in pattern]


def match_section_key(heading: str, section_keys: Sequence[str] = ANALYSIS_SECTION_KEYS) -> Optional[str]:
    """Return the canonical key for *heading*, or None when nothing matches.

    Multi-word synonyms of every key are tried before any single-word one,
    so "Market Risks" beats the bare "market" prefix. Within a tier, keys
    go in canonical order and synonyms in listed order. A bare leading
    ordinal ("2.") maps to the key at that position as a last resort.
    """
    cleaned = _clean_heading(heading)
    if not cleaned:
        return None

    for key, pattern in _synonym_patterns(section_keys):
        if re.match(_ORDINAL_PREFIX + pattern, cleaned, re.IGNORECASE):
            return key

    ordinal = re.match(r"(\d+)\s*[.):]", cleaned)
    if ordinal:
        position = int(ordinal.group(1))
        if 1 <= position <= len(section_keys):
            return section_keys[position - 1]
    return None


def _link_citation(match: re.Match, citations: Sequence[str]) -> str:
    index = int(match.group(1))
    if 1 <= index <= len(citations):
        url = html.escape(citations[index - 1], quote=True)
        return f'<a href="{url}" target="_blank" rel="noopener noreferrer">[{index}]</a>'
    return match.group(0)


def format_content_line(line: str, citations: Sequence[str] = ()) -> str:
    """Normalize one content line for HTML display.

    Numbered, dash and asterisk bullets become a single bullet glyph,
    ``**bold**`` and ``### sub-headings`` become ``<strong>``, and in-range
    ``[n]`` markers become links. Out-of-range markers are left as literal text.
    """
    text = line.strip()
    if _SUBHEADING_RE.match(text):
        text = _SUBHEADING_RE.sub("", text).strip("#").strip().replace("**", "")
        return f"<strong>{html.escape(text, quote=False)}</strong>" if text else ""
    is_bullet = bool(_BULLET_MARKER_RE.match(text))
    if is_bullet:
        text = _BULLET_MARKER_RE.sub("", text, count=1)

    text = html.escape(text, quote=False)
    text = _BOLD_RE.sub(lambda m: f"<strong>{m.group(1) or m.group(2)}</strong>", text)
    text = _CITATION_RE.sub(lambda m: _link_citation(m, citations), text)
    text = re.sub(r"\s{2,}", " ", text)

    return f"{BULLET} {text}" if is_bullet else text


def split_sections(text: str) -> List[tuple[str, List[str]]]:
    """Split markdown into (heading, content lines) chunks, in document order."""
    chunks: List[tuple[str, List[str]]] = []
    for chunk in _HEADING_SPLIT_RE.split(text or ""):
        lines = [ln for ln in chunk.splitlines() if ln.strip()]
        if not lines:
            continue
        chunks.append((_clean_heading(lines[0]), lines[1:]))
    return chunks


def parse_sections(
    text: str,
    citations: Sequence[str] = (),
    section_keys: Sequence[str] = ANALYSIS_SECTION_KEYS,
) -> Dict[str, str]:
    """Parse oracle markdown into an ordered mapping of section key → formatted text.

    Key order follows *section_keys*, never the oracle's order. Unmatched
    headings are dropped; a heading matching an already-filled key is
    appended to it. Sections that never appear are "".
    """
    collected: Dict[str, List[str]] = {key: [] for key in section_keys}

    for heading, lines in split_sections(text):
        key = match_section_key(heading, section_keys)
        if key is None:
            logger.debug("[SECTIONS] Dropping unmatched heading: %s", heading[:80])
            continue
        collected[key].extend(format_content_line(ln, citations) for ln in lines)

    return {key: "\n".join(collected[key]) for key in section_keys}


def raw_section_text(text: str, key: str, section_keys: Sequence[str] = ANALYSIS_SECTION_KEYS) -> str:
    """Unformatted text of one section, used to narrow heuristic searches."""
    parts: List[str] = []
    for heading, lines in split_sections(text):
        if match_section_key(heading, section_keys) == key:
            parts.extend(lines)
    return "\n".join(parts)


def cited_urls(text: str, citations: Sequence[str]) -> List[str]:
    """URLs for the distinct in-range ``[n]`` markers in *text*, ordered by n."""
    indices = sorted({int(n) for n in _CITATION_RE.findall(text or "")})
    return [citations[i - 1] for i in indices if 1 <= i <= len(citations)]
