import pytest

from questionnaire import (
    CATEGORIES,
    QUESTIONS,
    QUESTIONS_BY_ID,
    SECTIONS,
    ResponseCollector,
    question_offset,
)
from wizard import RESULTS, SECTION, WELCOME, AssessmentWizard, WizardError


def _answer_section(collector, index, value=3):
    for question in SECTIONS[index].questions:
        collector.record_answer(question.id, value)


def test_question_bank_shape():
    assert len(QUESTIONS) == 50
    assert sorted(QUESTIONS_BY_ID) == list(range(1, 51))
    assert [section.category for section in SECTIONS] == CATEGORIES
    for section in SECTIONS:
        assert len(section.questions) == 10
        assert all(question.category == section.category for question in section.questions)


def test_question_ids_interleave_categories():
    assert [q.id for q in SECTIONS[0].questions] == [1, 6, 11, 16, 21, 26, 31, 36, 41, 46]
    assert [q.id for q in SECTIONS[4].questions][-1] == 50
    assert QUESTIONS_BY_ID[2].text == "I can 'reframe' bad situations quickly"
    assert QUESTIONS_BY_ID[5].category == "SS"


def test_question_offset_counts_prior_sections():
    assert [question_offset(index) for index in range(5)] == [0, 10, 20, 30, 40]


def test_collector_tracks_progress_and_overwrites():
    collector = ResponseCollector()
    assert collector.progress_fraction() == 0

    collector.record_answer(1, 2)
    collector.record_answer(1, 5)
    assert collector.answers == {1: 5}
    assert collector.progress_fraction() == pytest.approx(1 / 50)
    assert not collector.is_complete()
    assert collector.missing_ids()[:3] == [6, 11, 16]

    for question in QUESTIONS:
        collector.record_answer(question.id, 1)
    assert collector.is_complete()
    assert collector.progress_fraction() == 1


def test_section_incomplete_with_one_missing_answer():
    collector = ResponseCollector()
    _answer_section(collector, 0)
    assert collector.section_is_complete(0)

    del collector.answers[SECTIONS[0].questions[-1].id]
    assert not collector.section_is_complete(0)
    assert not collector.section_is_complete(1)


def test_collector_round_trips_through_session_dict():
    collector = ResponseCollector()
    _answer_section(collector, 1, value=4)
    restored = ResponseCollector.from_dict(collector.to_dict())
    assert restored.answers == collector.answers
    assert all(isinstance(key, str) for key in collector.to_dict())


def test_wizard_start_requires_identity():
    wizard = AssessmentWizard()
    with pytest.raises(WizardError) as excinfo:
        wizard.start("  ", "Acme")
    assert excinfo.value.key == "missing_identity"
    assert wizard.step == WELCOME

    wizard.start(" Ada ", " Acme ")
    assert (wizard.step, wizard.section_index) == (SECTION, 0)
    assert (wizard.name, wizard.organization) == ("Ada", "Acme")


def test_wizard_refuses_to_advance_past_incomplete_section():
    wizard = AssessmentWizard()
    wizard.start("Ada", "Acme")
    for question in SECTIONS[0].questions[:9]:
        wizard.collector.record_answer(question.id, 3)

    with pytest.raises(WizardError) as excinfo:
        wizard.next_section()
    assert excinfo.value.key == "section_incomplete"
    assert wizard.section_index == 0

    wizard.collector.record_answer(SECTIONS[0].questions[9].id, 3)
    wizard.next_section()
    assert wizard.section_index == 1


def test_wizard_going_back_keeps_answers():
    wizard = AssessmentWizard()
    wizard.start("Ada", "Acme")
    _answer_section(wizard.collector, 0, value=5)
    wizard.next_section()
    wizard.previous_section()
    assert wizard.section_index == 0
    assert wizard.collector.section_is_complete(0)

    wizard.previous_section()
    assert wizard.section_index == 0


def test_wizard_submit_requires_every_answer():
    wizard = AssessmentWizard()
    wizard.start("Ada", "Acme")
    for index in range(4):
        _answer_section(wizard.collector, index)
        wizard.next_section()
    assert wizard.is_last_section

    with pytest.raises(WizardError) as excinfo:
        wizard.submit()
    assert excinfo.value.key == "incomplete_submission"
    assert wizard.step == SECTION

    _answer_section(wizard.collector, 4)
    assert wizard.submit() == {"SA": 30, "ME": 30, "MO": 30, "E": 30, "SS": 30}
    assert wizard.step == RESULTS


def test_wizard_rejects_transitions_from_wrong_step():
    wizard = AssessmentWizard()
    with pytest.raises(WizardError):
        wizard.next_section()
    with pytest.raises(WizardError):
        wizard.submit()


def test_wizard_session_round_trip_and_restart():
    wizard = AssessmentWizard()
    wizard.start("Ada", "Acme")
    _answer_section(wizard.collector, 0)
    wizard.next_section()

    restored = AssessmentWizard.from_session(wizard.to_session())
    assert restored.step == SECTION
    assert restored.section_index == 1
    assert restored.collector.answers == wizard.collector.answers

    restored.restart()
    assert restored.step == WELCOME
    assert restored.collector.answered_count == 0


def test_wizard_from_session_ignores_bad_state():
    assert AssessmentWizard.from_session(None).step == WELCOME
    assert AssessmentWizard.from_session({"step": "bogus"}).step == WELCOME
    assert AssessmentWizard.from_session({"step": RESULTS, "scores": None}).step == SECTION
    assert AssessmentWizard.from_session({"step": SECTION, "section_index": 99}).section_index == 4
