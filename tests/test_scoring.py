import random
from datetime import date

import pytest

from questionnaire import CATEGORIES, QUESTIONS, SECTIONS
from scoring import (
    CHART_ORDER,
    IncompleteResponsesError,
    build_report,
    chart_series,
    compute_scores,
    interpret,
    strongest_categories,
    weakest_categories,
)


def _answers(value=3):
    return {question.id: value for question in QUESTIONS}


def test_all_threes_scores_thirty_everywhere():
    scores = compute_scores(_answers(3))
    assert scores == {"SA": 30, "ME": 30, "MO": 30, "E": 30, "SS": 30}
    assert all(interpret(score).label == "Needs Consistent Attention" for score in scores.values())
    assert strongest_categories(scores) == CATEGORIES
    assert weakest_categories(scores) == CATEGORIES


def test_category_totals_are_sums_of_their_own_questions():
    rng = random.Random(1234)
    for _ in range(200):
        answers = {question.id: rng.randint(1, 5) for question in QUESTIONS}
        scores = compute_scores(answers)
        for section in SECTIONS:
            expected = sum(answers[q.id] for q in section.questions)
            assert scores[section.category] == expected
            assert 10 <= scores[section.category] <= 50


def test_scores_follow_question_category_not_id_order():
    answers = _answers(1)
    for question in SECTIONS[2].questions:  # Motivating Oneself
        answers[question.id] = 5
    scores = compute_scores(answers)
    assert scores["MO"] == 50
    assert scores["SA"] == scores["ME"] == scores["E"] == scores["SS"] == 10


def test_compute_scores_rejects_incomplete_responses():
    answers = _answers(4)
    del answers[17]
    with pytest.raises(IncompleteResponsesError) as excinfo:
        compute_scores(answers)
    assert excinfo.value.missing == [17]


@pytest.mark.parametrize(
    "score, label, rank",
    [
        (10, "Needs Improvement", 0),
        (17, "Needs Improvement", 0),
        (18, "Needs Consistent Attention", 1),
        (34, "Needs Consistent Attention", 1),
        (35, "Strength", 2),
        (50, "Strength", 2),
    ],
)
def test_interpret_boundaries(score, label, rank):
    tier = interpret(score)
    assert tier.label == label
    assert tier.severity_rank == rank


def test_ties_are_kept_in_category_order():
    scores = {"SA": 40, "ME": 40, "MO": 30, "E": 20, "SS": 25}
    assert strongest_categories(scores) == ["SA", "ME"]
    assert weakest_categories(scores) == ["E"]

    reordered = {"SS": 12, "E": 40, "MO": 12, "ME": 40, "SA": 33}
    assert strongest_categories(reordered) == ["ME", "E"]
    assert weakest_categories(reordered) == ["MO", "SS"]


def test_chart_series_uses_single_canonical_order():
    scores = {"SA": 11, "ME": 22, "MO": 33, "E": 44, "SS": 50}
    labels, values = chart_series(scores)
    assert CHART_ORDER == ["MO", "E", "SA", "ME", "SS"]
    assert values == [33, 44, 11, 22, 50]
    assert labels == ["Motivating\nOneself", "Empathy", "Self-Awareness", "Managing\nEmotions", "Social\nSkill"]


def test_build_report_composes_content():
    scores = {"SA": 40, "ME": 40, "MO": 30, "E": 17, "SS": 25}
    report = build_report("Ada Lovelace", "Analytical Engines", scores, report_date=date(2024, 3, 5))

    assert report.display_date == "March 5, 2024"
    assert [result.code for result in report.categories] == CATEGORIES
    assert report.scores == scores
    assert report.strongest == ("SA", "ME")
    assert report.weakest == ("E",)
    assert report.strongest_titles == ["Self-Awareness", "Managing Emotions"]
    assert report.weakest_titles == ["Empathy"]

    tiers = {result.code: result.tier.label for result in report.categories}
    assert tiers == {
        "SA": "Strength",
        "ME": "Strength",
        "MO": "Needs Consistent Attention",
        "E": "Needs Improvement",
        "SS": "Needs Consistent Attention",
    }
    assert report.categories[0].tier.color == "#27AE60"
    assert report.categories[3].advice == "Make this area a development priority."

    assert [step.code for step in report.next_steps] == CATEGORIES
    assert all(step.text for step in report.next_steps)
    assert report.next_steps[0].text.startswith("Practice mindfulness and self-reflection.")
    assert [entry.heading for entry in report.legend] == [
        "Strength (35-50)",
        "Needs Consistent Attention (18-34)",
        "Needs Improvement (10-17)",
    ]


def test_recomputation_is_idempotent():
    answers = {question.id: (question.id % 5) + 1 for question in QUESTIONS}
    first = compute_scores(answers)
    second = compute_scores(dict(answers))
    assert first == second

    day = date(2025, 1, 1)
    assert build_report("A", "B", first, report_date=day) == build_report("A", "B", second, report_date=day)
