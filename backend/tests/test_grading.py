import pytest

from app.core import errors
from app.models.quiz import Question, QuestionType, Quiz
from app.services.grading import GradingEngine, coarse_grade, letter_grade, password_matches


def _quiz(**kw) -> Quiz:
    defaults = dict(is_active=True, is_public=True, password=None, allow_retakes=False, total_points=0)
    defaults.update(kw)
    return Quiz(**defaults)


def _question(position: int, correct: str, points: int) -> Question:
    return Question(
        position=position,
        type=QuestionType.multiple_choice,
        prompt=f"Q{position}",
        options=["A", "B", "C"],
        correct_answer=correct,
        points=points,
    )


@pytest.mark.parametrize(
    "percentage,grade",
    [(96.9, "A"), (97, "A+"), (93, "A"), (92.9, "A-"), (60, "D-"), (59.9, "F"), (0, "F"), (100, "A+")],
)
def test_letter_grade_boundaries(percentage, grade):
    assert letter_grade(percentage) == grade


def test_coarse_grade_collapses_modifiers():
    assert coarse_grade("A+") == "A"
    assert coarse_grade("B-") == "B"
    assert coarse_grade("F") == "F"
    assert coarse_grade("") == "F"


def test_all_correct_scores_full_marks():
    quiz = _quiz(total_points=5)
    questions = [_question(1, "B", 2), _question(2, "B", 3)]

    result = GradingEngine().grade(quiz, questions, ["B", "B"])

    assert result.total_score == 5
    assert result.max_score == 5
    assert result.percentage == 100
    assert result.letter_grade == "A+"
    assert result.correct_answers == 2
    assert [r.points_awarded for r in result.results] == [2, 3]


def test_missing_and_empty_answers_are_incorrect():
    quiz = _quiz(total_points=5)
    questions = [_question(1, "B", 2), _question(2, "B", 3)]

    result = GradingEngine().grade(quiz, questions, [""])

    assert result.total_score == 0
    assert result.total_questions == 2
    assert all(not r.is_correct for r in result.results)
    assert result.results[1].student_answer == ""


def test_zero_max_score_gives_zero_percentage():
    quiz = _quiz(total_points=0)
    result = GradingEngine().grade(quiz, [], [])
    assert result.percentage == 0
    assert result.letter_grade == "F"


def test_percentage_stays_within_bounds():
    # Stale totals on the quiz must not push the percentage past 100.
    quiz = _quiz(total_points=1)
    result = GradingEngine().grade(quiz, [_question(1, "A", 3)], ["A"])
    assert 0 <= result.percentage <= 100


def test_validate_payload_collects_all_problems():
    with pytest.raises(errors.ValidationError) as exc:
        GradingEngine().validate_payload(
            {"student_id": "", "student_name": "", "answers": "B", "time_spent_seconds": -5},
            question_count=2,
        )
    problems = exc.value.errors
    assert "student_id is required" in problems
    assert "student_name is required" in problems
    assert "answers must be a list" in problems
    assert "time_spent_seconds must not be negative" in problems


def test_validate_payload_rejects_too_many_answers():
    with pytest.raises(errors.ValidationError):
        GradingEngine().validate_payload(
            {"student_id": "s1", "student_name": "S", "answers": ["A", "B", "C"]},
            question_count=2,
        )


def test_validate_payload_normalizes_missing_answers():
    payload = GradingEngine().validate_payload(
        {"student_id": " s1 ", "student_name": "S", "answers": ["A", None]},
        question_count=2,
    )
    assert payload.student_id == "s1"
    assert payload.answers == ["A", ""]


def test_admit_checks_state_before_password():
    quiz = _quiz(is_active=False, is_public=False, password="XYZ123")
    with pytest.raises(errors.QuizInactiveError):
        GradingEngine().admit(quiz, password="wrong", prior_submission_exists=False)


def test_admit_checks_password_before_duplicate():
    quiz = _quiz(is_public=False, password="XYZ123")
    with pytest.raises(errors.AuthorizationError):
        GradingEngine().admit(quiz, password="xyz123", prior_submission_exists=True)

    with pytest.raises(errors.DuplicateSubmissionError):
        GradingEngine().admit(quiz, password="XYZ123", prior_submission_exists=True)


def test_admit_allows_retakes():
    quiz = _quiz(allow_retakes=True)
    GradingEngine().admit(quiz, password=None, prior_submission_exists=True)


def test_password_match_is_exact():
    quiz = _quiz(is_public=False, password="XYZ123")
    assert password_matches(quiz, "XYZ123")
    assert not password_matches(quiz, "XYZ123 ")
    assert not password_matches(quiz, None)
