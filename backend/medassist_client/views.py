"""Display-side parsing of assistant responses."""

from __future__ import annotations

import re
from dataclasses import dataclass

_CITATION_DEF_RE = re.compile(r"\[(\d+)\]:\s*(https?://\S+)")
_TITLE_DEF_RE = re.compile(r"\[((?!\d+\])[^\]]+)\]:\s*(https?://\S+)")
_ANY_DEF_RE = re.compile(r"\[.*?\]:\s*https?://\S+")
_CITATION_REF_RE = re.compile(r"\[(\d+(?:,\s*\d+)*)\]")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_BULLET_PREFIXES = ("* ", "• ", "- ")


@dataclass
class AnalysisSummary:
    category: str
    confidence: float
    analysis: str


@dataclass
class MealSummaryLine:
    kind: str
    text: str


def parse_analysis(content: str) -> AnalysisSummary:
    if not (content or "").strip():
        return AnalysisSummary(category="Unknown", confidence=0.0, analysis="No analysis available")
    category = ""
    confidence = 0.0
    analysis_lines: list[str] = []
    for line in content.split("\n"):
        trimmed = line.strip()
        if trimmed.startswith("Category:"):
            category = trimmed[len("Category:"):].strip()
        elif trimmed.startswith("Confidence:"):
            match = _NUMBER_RE.search(trimmed[len("Confidence:"):])
            confidence = float(match.group(0)) if match else 0.0
        else:
            analysis_lines.append(trimmed)
    return AnalysisSummary(
        category=category or "Unknown",
        confidence=confidence,
        analysis="\n".join(analysis_lines).strip() or "No analysis available",
    )


def parse_medication_alert(content: str) -> str:
    return (content or "").strip() or "No medication alerts available"


def parse_meal_summary(content: str) -> list[MealSummaryLine]:
    lines: list[MealSummaryLine] = []
    for raw in (content or "").split("\n"):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("**"):
            lines.append(MealSummaryLine(kind="heading", text=line.replace("**", "").strip()))
        elif line.startswith(_BULLET_PREFIXES):
            lines.append(MealSummaryLine(kind="bullet", text=line[2:].replace('"', "").strip()))
        else:
            lines.append(MealSummaryLine(kind="text", text=line))
    return lines


def process_citations(content: str) -> str:
    """Turn ``[n]: url`` definitions into inline markdown links.

    Definition lines are dropped, numbered references become links to their
    source, named references ``[Title]`` link to their definition, and
    ``###`` headings are promoted to top level.
    """
    citations: dict[str, str] = {}
    titles: dict[str, str] = {}
    for line in content.split("\n"):
        citation = _CITATION_DEF_RE.search(line)
        if citation:
            citations[citation.group(1)] = citation.group(2).strip()
        title = _TITLE_DEF_RE.search(line)
        if title:
            titles[title.group(1)] = title.group(2).strip()

    def link_numbers(match: re.Match[str]) -> str:
        numbers = [n.strip() for n in match.group(1).split(",")]
        return ", ".join(f"[{n}]({citations[n]})" if n in citations else f"[{n}]" for n in numbers)

    processed_lines: list[str] = []
    for line in content.split("\n"):
        if _ANY_DEF_RE.search(line):
            continue
        processed = line
        if citations:
            processed = _CITATION_REF_RE.sub(link_numbers, processed)
        if processed.startswith("###"):
            processed = re.sub(r"^###\s*(.*)$", r"# \1", processed)
        for title, url in titles.items():
            link = f"[{title}]({url})"
            processed = re.sub(rf"\[{re.escape(title)}\](?!\()", lambda _match, link=link: link, processed)
        processed_lines.append(processed)
    return "\n".join(processed_lines)
