import pytest

from lms_portal.assessments.model import Question
from lms_portal.assessments.service import percentage_of, score_answer
from lms_portal.core.enums import QuestionType


def _q(kind, answer, points=2.0, options=None):
    return Question(question_id=1, question_type=kind, text="?", points=points, position=1, options=options, correct_answer=answer)


@pytest.mark.parametrize(
    "given,expected",
    [("Paris", 2.0), (" paris ", 2.0), ("London", 0.0), (None, 0.0)],
)
def test_multiple_choice_is_case_and_space_insensitive(given, expected):
    q = _q(QuestionType.MULTIPLE_CHOICE, "Paris", options=("Paris", "London"))
    assert score_answer(q, given) == expected


def test_true_false_accepts_bool_or_text():
    q = _q(QuestionType.TRUE_FALSE, "true")
    assert score_answer(q, True) == 2.0
    assert score_answer(q, "TRUE") == 2.0
    assert score_answer(q, "false") == 0.0


def test_multiple_select_needs_exact_set():
    q = _q(QuestionType.MULTIPLE_SELECT, ["a", "c"], points=3.0, options=("a", "b", "c"))
    assert score_answer(q, ["c", "a"]) == 3.0
    assert score_answer(q, ["a"]) == 0.0
    assert score_answer(q, ["a", "b", "c"]) == 0.0
    assert score_answer(q, "a") == 0.0


def test_free_text_is_left_for_manual_grading():
    assert score_answer(_q(QuestionType.ESSAY, None), "A long answer") == 0.0
    assert score_answer(_q(QuestionType.SHORT_ANSWER, "x"), "x") == 0.0


def test_percentage_of():
    assert percentage_of(7, 8) == 87.5
    assert percentage_of(1, 3) == 33.33
    assert percentage_of(5, 0) == 0.0
