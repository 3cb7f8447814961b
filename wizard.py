from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from questionnaire import ResponseCollector, Section
from scoring import compute_scores

WELCOME = "welcome"
SECTION = "section"
RESULTS = "results"
STEPS = (WELCOME, SECTION, RESULTS)


class WizardError(Exception):
    """A wizard transition was refused; ``key`` names the user-facing message."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


@dataclass
class AssessmentWizard:
    """Welcome -> Section(i) -> Results.

    Moving forward past a section requires every question in it to be answered,
    moving back is always allowed and keeps answers, and submitting requires all
    questions. A refused transition raises :class:`WizardError` and leaves the
    state untouched.
    """

    step: str = WELCOME
    section_index: int = 0
    name: str = ""
    organization: str = ""
    collector: ResponseCollector = field(default_factory=ResponseCollector)
    scores: Optional[Dict[str, int]] = None

    @property
    def sections(self) -> Sequence[Section]:
        return self.collector.sections

    @property
    def current_section(self) -> Section:
        return self.sections[self.section_index]

    @property
    def is_last_section(self) -> bool:
        return self.section_index == len(self.sections) - 1

    def start(self, name: str, organization: str) -> None:
        self._require(WELCOME)
        name, organization = (name or "").strip(), (organization or "").strip()
        if not name or not organization:
            raise WizardError("missing_identity")
        self.name = name
        self.organization = organization
        self.step = SECTION
        self.section_index = 0

    def next_section(self) -> None:
        self._require(SECTION)
        if not self.collector.section_is_complete(self.section_index):
            raise WizardError("section_incomplete")
        if not self.is_last_section:
            self.section_index += 1

    def previous_section(self) -> None:
        self._require(SECTION)
        if self.section_index > 0:
            self.section_index -= 1

    def submit(self) -> Dict[str, int]:
        self._require(SECTION)
        if self.collector.progress_fraction() < 1:
            raise WizardError("incomplete_submission")
        self.scores = compute_scores(self.collector.answers, self.sections)
        self.step = RESULTS
        return self.scores

    def restart(self) -> None:
        self.step = WELCOME
        self.section_index = 0
        self.name = ""
        self.organization = ""
        self.collector = ResponseCollector(self.sections)
        self.scores = None

    def _require(self, step: str) -> None:
        if self.step != step:
            raise WizardError("wrong_step")

    def to_session(self) -> Dict[str, object]:
        return {
            "step": self.step,
            "section_index": self.section_index,
            "name": self.name,
            "organization": self.organization,
            "answers": self.collector.to_dict(),
            "scores": self.scores,
        }

    @classmethod
    def from_session(cls, data: Optional[Dict[str, object]]) -> "AssessmentWizard":
        if not data or data.get("step") not in STEPS:
            return cls()
        wizard = cls(
            step=str(data["step"]),
            section_index=int(data.get("section_index") or 0),  # type: ignore[arg-type]
            name=str(data.get("name") or ""),
            organization=str(data.get("organization") or ""),
            collector=ResponseCollector.from_dict(data.get("answers") or {}),  # type: ignore[arg-type]
            scores=data.get("scores"),  # type: ignore[arg-type]
        )
        wizard.section_index = min(max(wizard.section_index, 0), len(wizard.sections) - 1)
        if wizard.step == RESULTS and not wizard.scores:
            wizard.step = SECTION
        return wizard
