from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    category: str

    @property
    def field_name(self) -> str:
        return f"q{self.id}"


@dataclass(frozen=True)
class Section:
    title: str
    category: str
    questions: Tuple[Question, ...]


CATEGORY_TITLES: Dict[str, str] = {
    "SA": "Self-Awareness",
    "ME": "Managing Emotions",
    "MO": "Motivating Oneself",
    "E": "Empathy",
    "SS": "Social Skill",
}
CATEGORIES: List[str] = list(CATEGORY_TITLES)

LIKERT_OPTIONS: List[Dict[str, object]] = [
    {"value": 1, "label": "Not at all"},
    {"value": 2, "label": "Infrequently"},
    {"value": 3, "label": "Half the time"},
    {"value": 4, "label": "Frequently"},
    {"value": 5, "label": "Always"},
]
ANSWER_VALUES = frozenset(option["value"] for option in LIKERT_OPTIONS)

# Question ids interleave the categories: SA owns 1, 6, 11, ...; ME owns 2, 7, ...
_QUESTION_TEXT: Dict[str, List[str]] = {
    "SA": [
        "I realise immediately when I lose my temper",
        "I know when I am happy",
        "I usually recognise when I am stressed",
        "When I am being 'emotional' I am aware of this",
        "When I feel anxious, I usually can account for the reason(s)",
        "I always know when I'm being unreasonable",
        "Awareness of my own emotions is very important to me at all times",
        "I can tell if someone has upset or annoyed me",
        "I can let anger 'go' quickly so that it no longer affects me",
        "I know what makes me happy",
    ],
    "ME": [
        "I can 'reframe' bad situations quickly",
        "I do not wear my 'heart on my sleeve'",
        "Others can rarely tell what kind of mood I am in",
        "I rarely 'fly off the handle' at other people",
        "Difficult people do not annoy me",
        "I can consciously alter my frame of mind or mood",
        "I do not let stressful situations or people affect me once I have left work",
        "I rarely worry about work or life in general",
        "I can suppress my emotions when I need to",
        "Others often do not know how I am feeling about things",
    ],
    "MO": [
        "I am able to always motivate myself to do difficult tasks",
        "I am usually able to prioritise important activities at work and get on with them",
        "I always meet deadlines",
        "I never waste time",
        "I do not deviate from the truth",
        "I believe you should do the difficult things first",
        "Delayed gratification is a virtue that I hold to",
        "I believe in 'Action this Day'",
        "I can always motivate myself even when I feel low",
        "Motivations has been the key to my success",
    ],
    "E": [
        "I am always able to see things from the other person's viewpoint",
        "I am excellent at empathising with someone else's problem",
        "I can tell if someone is not happy with me",
        "I can tell if a team of people are not getting along with each other",
        "I can usually understand why people are being difficult towards me",
        "I believe other individuals are not 'difficult' just 'different'",
        "I can understand if I am being unreasonable",
        "I can understand why my actions sometimes offend others",
        "I can sometimes see things from others' point of view",
        "Reasons for disagreements are always clear to me",
    ],
    "SS": [
        "I am an excellent listener",
        "I never interrupt other people's conversations",
        "I am good at adapting and mixing with a variety of people",
        "People are the most interesting thing in life for me",
        "I love to meet new people and get to know what makes them 'tick'",
        "I need a variety of work colleagues to make my job interesting",
        "I like to ask questions to find out what it is important to people",
        "I see working with difficult people as simply a challenge to win them over",
        "I am good at reconciling differences with other people",
        "I generally build solid relationships with those I work with",
    ],
}


def _build_sections() -> Tuple[Section, ...]:
    sections = []
    for offset, category in enumerate(CATEGORIES, start=1):
        questions = tuple(
            Question(id=offset + position * len(CATEGORIES), text=text, category=category)
            for position, text in enumerate(_QUESTION_TEXT[category])
        )
        sections.append(Section(title=CATEGORY_TITLES[category], category=category, questions=questions))
    return tuple(sections)


SECTIONS: Tuple[Section, ...] = _build_sections()
QUESTIONS: Tuple[Question, ...] = tuple(q for section in SECTIONS for q in section.questions)
QUESTIONS_BY_ID: Dict[int, Question] = {q.id: q for q in QUESTIONS}


def question_offset(section_index: int, sections: Sequence[Section] = SECTIONS) -> int:
    """Number of questions shown before the given section, for display numbering."""
    return sum(len(section.questions) for section in sections[:section_index])


class ResponseCollector:
    def __init__(self, sections: Sequence[Section] = SECTIONS, answers: Optional[Dict[int, int]] = None):
        self.sections = sections
        self.answers: Dict[int, int] = dict(answers or {})

    @property
    def total_questions(self) -> int:
        return sum(len(section.questions) for section in self.sections)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def record_answer(self, question_id: int, value: int) -> None:
        self.answers[question_id] = value

    def section_is_complete(self, section_index: int) -> bool:
        return all(q.id in self.answers for q in self.sections[section_index].questions)

    def progress_fraction(self) -> float:
        return self.answered_count / self.total_questions

    def missing_ids(self) -> List[int]:
        return [q.id for section in self.sections for q in section.questions if q.id not in self.answers]

    def is_complete(self) -> bool:
        return not self.missing_ids()

    def to_dict(self) -> Dict[str, int]:
        # Session storage is JSON, which only allows string keys.
        return {str(question_id): value for question_id, value in self.answers.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, int], sections: Sequence[Section] = SECTIONS) -> "ResponseCollector":
        return cls(sections, {int(question_id): int(value) for question_id, value in data.items()})


