from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from questionnaire import CATEGORIES, CATEGORY_TITLES, SECTIONS, Section

BASE_DIR = Path(__file__).resolve().parent
REPORT_COPY_PATH = BASE_DIR / "data" / "report_copy.json"
try:
    REPORT_COPY = json.loads(REPORT_COPY_PATH.read_text(encoding="utf-8"))
except FileNotFoundError:
    REPORT_COPY = {}
except json.JSONDecodeError:
    REPORT_COPY = {}

# One radar ordering for every chart the app draws, web page and PDF alike.
CHART_ORDER: List[str] = ["MO", "E", "SA", "ME", "SS"]

MIN_CATEGORY_SCORE = 10
MAX_CATEGORY_SCORE = 50


@dataclass(frozen=True)
class Tier:
    label: str
    severity_rank: int  # 0 improve, 1 attention, 2 strength
    color: str
    min_score: int
    max_score: int


STRENGTH = Tier("Strength", 2, "#27AE60", 35, 50)
ATTENTION = Tier("Needs Consistent Attention", 1, "#F39C12", 18, 34)
IMPROVEMENT = Tier("Needs Improvement", 0, "#B31B1B", 10, 17)
TIERS: Tuple[Tier, ...] = (STRENGTH, ATTENTION, IMPROVEMENT)


@dataclass(frozen=True)
class CategoryResult:
    code: str
    title: str
    score: int
    tier: Tier

    @property
    def advice(self) -> str:
        return tier_copy(self.tier).get("advice", "")


@dataclass(frozen=True)
class NextStep:
    code: str
    title: str
    text: str


@dataclass(frozen=True)
class LegendEntry:
    tier: Tier
    heading: str
    description: str


@dataclass(frozen=True)
class ReportContent:
    name: str
    organization: str
    report_date: date
    categories: Tuple[CategoryResult, ...]
    strongest: Tuple[str, ...]
    weakest: Tuple[str, ...]
    next_steps: Tuple[NextStep, ...]
    legend: Tuple[LegendEntry, ...]

    @property
    def scores(self) -> Dict[str, int]:
        return {result.code: result.score for result in self.categories}

    @property
    def strongest_titles(self) -> List[str]:
        return [CATEGORY_TITLES[code] for code in self.strongest]

    @property
    def weakest_titles(self) -> List[str]:
        return [CATEGORY_TITLES[code] for code in self.weakest]

    @property
    def display_date(self) -> str:
        return f"{self.report_date:%B} {self.report_date.day}, {self.report_date.year}"


class IncompleteResponsesError(ValueError):
    def __init__(self, missing: Sequence[int]):
        self.missing = list(missing)
        super().__init__(f"Responses are incomplete; missing question ids: {self.missing}")


def compute_scores(responses: Mapping[int, int], sections: Sequence[Section] = SECTIONS) -> Dict[str, int]:
    """Sum the answers of each section's questions into one total per category.

    ``responses`` must hold an answer for every question; callers gate on
    completeness before scoring a final submission.
    """
    missing = [q.id for section in sections for q in section.questions if q.id not in responses]
    if missing:
        raise IncompleteResponsesError(missing)

    scores = {section.category: 0 for section in sections}
    for section in sections:
        for question in section.questions:
            scores[section.category] += int(responses[question.id])
    return scores


def interpret(score: int) -> Tier:
    if score >= STRENGTH.min_score:
        return STRENGTH
    if score >= ATTENTION.min_score:
        return ATTENTION
    return IMPROVEMENT


def tier_copy(tier: Tier) -> Dict[str, str]:
    return REPORT_COPY.get("tiers", {}).get(str(tier.severity_rank), {})


def _ordered(scores: Mapping[str, int]) -> List[Tuple[str, int]]:
    return [(code, scores[code]) for code in CATEGORIES if code in scores]


def strongest_categories(scores: Mapping[str, int]) -> List[str]:
    ordered = _ordered(scores)
    top = max(score for _, score in ordered)
    return [code for code, score in ordered if score == top]


def weakest_categories(scores: Mapping[str, int]) -> List[str]:
    ordered = _ordered(scores)
    bottom = min(score for _, score in ordered)
    return [code for code, score in ordered if score == bottom]


def chart_series(scores: Mapping[str, int]) -> Tuple[List[str], List[int]]:
    """Labels and values in radar order; two-word titles wrap onto two lines."""
    labels = [CATEGORY_TITLES[code].replace(" ", "\n", 1) for code in CHART_ORDER]
    values = [int(scores[code]) for code in CHART_ORDER]
    return labels, values


def build_report(
    name: str,
    organization: str,
    scores: Mapping[str, int],
    report_date: Optional[date] = None,
) -> ReportContent:
    categories = tuple(
        CategoryResult(code=code, title=CATEGORY_TITLES[code], score=int(score), tier=interpret(int(score)))
        for code, score in _ordered(scores)
    )
    next_step_text = REPORT_COPY.get("next_steps", {})
    next_steps = tuple(
        NextStep(code=code, title=CATEGORY_TITLES[code], text=next_step_text.get(code, ""))
        for code in CATEGORIES
    )
    legend = tuple(
        LegendEntry(
            tier=tier,
            heading=f"{tier.label} ({tier_copy(tier).get('range', f'{tier.min_score}-{tier.max_score}')})",
            description=tier_copy(tier).get("description", ""),
        )
        for tier in TIERS
    )
    return ReportContent(
        name=name,
        organization=organization,
        report_date=report_date or date.today(),
        categories=categories,
        strongest=tuple(strongest_categories(scores)),
        weakest=tuple(weakest_categories(scores)),
        next_steps=next_steps,
        legend=legend,
    )
