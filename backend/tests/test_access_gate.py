import pytest

from app.core import errors
from app.core.security import Identity, UserRole
from app.models.quiz import Question, QuestionType, Quiz
from app.services.access_gate import AccessGate, AccessKind


def _quiz(**kw) -> Quiz:
    defaults = dict(
        name="Midterm review",
        description="",
        category="math",
        is_public=False,
        password="XYZ123",
        is_active=True,
        allow_retakes=False,
        show_results=True,
        owner_id="fac-1",
        owner_name="Dr. Reyes",
        total_points=2,
        total_questions=1,
        time_limit_minutes=30,
    )
    defaults.update(kw)
    return Quiz(**defaults)


QUESTIONS = [
    Question(
        position=1,
        type=QuestionType.multiple_choice,
        prompt="2 + 2?",
        options=["3", "4"],
        correct_answer="4",
        points=2,
        explanation="Arithmetic.",
    )
]

STUDENT = Identity(user_id="stu-1", role=UserRole.student)
OWNER = Identity(user_id="fac-1", role=UserRole.faculty)


def test_missing_quiz_is_denied():
    assert AccessGate().resolve_access(STUDENT, None, None).kind == AccessKind.denied


def test_wrong_password_gets_preview_without_questions():
    decision = AccessGate().resolve_access(STUDENT, _quiz(), "wrong", QUESTIONS)

    assert decision.kind == AccessKind.preview_only
    assert decision.requires_password is True
    assert "questions" not in decision.payload
    assert decision.payload["requires_password"] is True
    assert "password" not in decision.payload


def test_no_password_gets_preview():
    decision = AccessGate().resolve_access(STUDENT, _quiz(), None, QUESTIONS)
    assert decision.kind == AccessKind.preview_only


def test_correct_password_hides_answers_from_takers():
    decision = AccessGate().resolve_access(STUDENT, _quiz(), "XYZ123", QUESTIONS)

    assert decision.kind == AccessKind.full_access
    question = decision.payload["questions"][0]
    assert question["options"] == ["3", "4"]
    assert "correct_answer" not in question
    assert "explanation" not in question


def test_public_quiz_needs_no_password():
    decision = AccessGate().resolve_access(STUDENT, _quiz(is_public=True, password=None), None, QUESTIONS)
    assert decision.kind == AccessKind.full_access


def test_inactive_quiz_rejects_takers():
    with pytest.raises(errors.QuizInactiveError):
        AccessGate().resolve_access(STUDENT, _quiz(is_active=False), "XYZ123", QUESTIONS)


def test_owner_sees_everything_even_when_ended():
    decision = AccessGate().resolve_access(OWNER, _quiz(is_active=False), None, QUESTIONS)

    assert decision.kind == AccessKind.full_access
    assert decision.payload["password"] == "XYZ123"
    assert decision.payload["questions"][0]["correct_answer"] == "4"


def test_other_faculty_is_denied():
    other = Identity(user_id="fac-2", role=UserRole.faculty)
    assert AccessGate().resolve_access(other, _quiz(), "XYZ123", QUESTIONS).kind == AccessKind.denied


def test_admin_has_owner_access():
    admin = Identity(user_id="adm-1", role=UserRole.admin)
    assert AccessGate().resolve_access(admin, _quiz(), None, QUESTIONS).kind == AccessKind.full_access
