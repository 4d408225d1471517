from datetime import datetime, timedelta, timezone

from app.core.security import Identity, UserRole
from app.models.submission import QuizSubmission
from app.schemas.quiz import QuizDraft
from app.services.quiz_lifecycle import QuizLifecycleManager
from app.services.quiz_repository import QuizRepository
from app.services.statistics import StatisticsAggregator, compute_statistics, round2
from app.services.submissions import SubmissionService


def _row(percentage: float, grade: str, minutes_ago: int = 0) -> QuizSubmission:
    return QuizSubmission(
        percentage=percentage,
        letter_grade=grade,
        submitted_at=datetime(2026, 3, 1, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    )


def test_round2_is_half_up():
    assert round2(2.675) in (2.67, 2.68)
    assert round2(0.125) == 0.13
    assert round2(66.666) == 66.67


def test_empty_submission_set():
    stats = compute_statistics([])
    assert stats.total_submissions == 0
    assert stats.average_score == 0
    assert stats.grade_distribution == {"A": 0, "B": 0, "C": 0, "D": 0, "F": 0}
    assert stats.last_submission_at is None


def test_statistics_over_submissions():
    stats = compute_statistics(
        [_row(100.0, "A+", 5), _row(60.0, "D-", 3), _row(40.0, "F", 1)]
    )

    assert stats.total_submissions == 3
    assert stats.average_score == 66.67
    assert stats.highest_score == 100.0
    assert stats.lowest_score == 40.0
    assert stats.pass_rate == 66.67
    assert stats.grade_distribution == {"A": 1, "B": 0, "C": 0, "D": 1, "F": 1}
    assert stats.last_submission_at == "2026-02-28T23:59:00+00:00"


def test_recompute_is_idempotent(db, faculty, make_quiz_body):
    repo = QuizRepository(db)
    owner = Identity(user_id=faculty["id"], role=UserRole.faculty)
    quiz, _ = QuizLifecycleManager(repo).create(owner, QuizDraft(**make_quiz_body(allow_retakes=True)))

    service = SubmissionService(repo)
    taker = Identity(user_id="stats-taker", role=UserRole.student)
    for answers in (["B", "True"], ["A", "True"], ["A", "False"]):
        service.submit(taker, quiz.id, {"student_id": "s-1", "student_name": "S", "answers": answers})

    aggregator = StatisticsAggregator(repo)
    first = aggregator.recompute(quiz.id)
    second = aggregator.recompute(quiz.id)

    assert first == second
    assert first.total_submissions == 3
    assert first.average_score == 53.33
    assert first.pass_rate == 66.67

    stored = repo.get_quiz(quiz.id)
    assert stored.stats == second.as_dict()
    assert stored.last_submission_at is not None
