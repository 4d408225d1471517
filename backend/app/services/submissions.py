"""Accepting, grading and recording quiz submissions.

Flow for :meth:`SubmissionService.submit`:

1. lock the quiz row and run admission (active, password, retake policy);
2. grade and insert the submission, commit;
3. recompute the quiz statistics in a separate transaction;
4. notify the sink.

Step 2 is the durable point. A failed statistics refresh in step 3 is reported
as a warning on the outcome; the next recompute rebuilds the snapshot from the
full submission set. Notification failures are only logged.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.core import errors
from app.core.security import Identity
from app.models.quiz import utcnow
from app.models.submission import QuizSubmission, SubmissionAnswer
from app.services import notifications
from app.services.grading import GradeResult, GradingEngine
from app.services.quiz_payloads import submission_payload
from app.services.quiz_repository import QuizRepository
from app.services.statistics import StatisticsAggregator

log = logging.getLogger(__name__)

STATS_REFRESH_WARNING = "statistics refresh failed; results are recorded and stats will update on the next submission"


@dataclass
class SubmissionOutcome:
    submission: QuizSubmission
    answers: list[SubmissionAnswer]
    show_results: bool
    # Rendered before commit, so it stays readable when the session is unusable.
    payload: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def _answer_rows(grade: GradeResult) -> list[SubmissionAnswer]:
    return [
        SubmissionAnswer(
            position=r.question_id,
            question=r.question,
            student_answer=r.student_answer,
            correct_answer=r.correct_answer,
            is_correct=r.is_correct,
            points_awarded=r.points_awarded,
            max_points=r.max_points,
        )
        for r in grade.results
    ]


class SubmissionService:
    def __init__(
        self,
        repo: QuizRepository,
        *,
        grader: GradingEngine | None = None,
        aggregator: StatisticsAggregator | None = None,
        sink: notifications.NotificationSink | None = None,
    ) -> None:
        self.repo = repo
        self.grader = grader or GradingEngine()
        self.aggregator = aggregator or StatisticsAggregator(repo)
        self.sink = sink

    def submit(self, actor: Identity, quiz_id: uuid.UUID, raw: dict[str, Any]) -> SubmissionOutcome:
        quiz = self.repo.get_quiz(quiz_id, for_update=True)
        if quiz is None:
            self.repo.rollback()
            raise errors.NotFoundError("quiz not found")

        try:
            questions = self.repo.get_questions(quiz.id)
            payload = self.grader.validate_payload(raw, question_count=len(questions))
            prior = False
            if not quiz.allow_retakes:
                prior = self.repo.has_student_submission(quiz.id, payload.student_id)
            self.grader.admit(quiz, password=payload.password, prior_submission_exists=prior)
        except errors.QuizError:
            self.repo.rollback()
            raise

        grade = self.grader.grade(quiz, questions, payload.answers)
        submission = QuizSubmission(
            id=uuid.uuid4(),
            quiz_id=quiz.id,
            student_id=payload.student_id,
            student_name=payload.student_name,
            submitted_by=actor.user_id,
            submitted_at=utcnow(),
            time_spent_seconds=payload.time_spent_seconds,
            total_score=grade.total_score,
            max_score=grade.max_score,
            percentage=grade.percentage,
            correct_answers=grade.correct_answers,
            total_questions=grade.total_questions,
            letter_grade=grade.letter_grade,
            exclusive_key=None if quiz.allow_retakes else payload.student_id,
        )
        answers = _answer_rows(grade)
        show_results = bool(quiz.show_results)
        owner_id = quiz.owner_id
        quiz_name = quiz.name
        submission_id = submission.id

        try:
            self.repo.add_submission(submission, answers)
            rendered = submission_payload(submission, answers, show_results=show_results)
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            if self.repo.get_quiz(quiz_id) is None:
                raise errors.NotFoundError("quiz not found") from e
            raise errors.DuplicateSubmissionError() from e

        log.info(
            "submission recorded quiz_id=%s submission_id=%s score=%s/%s grade=%s",
            quiz_id,
            submission_id,
            grade.total_score,
            grade.max_score,
            grade.letter_grade,
        )

        warnings: list[str] = []
        try:
            self.aggregator.recompute(quiz_id)
        except errors.StorageError:
            log.warning("stats refresh failed after submission quiz_id=%s", quiz_id)
            warnings.append(STATS_REFRESH_WARNING)

        notifications.safe_notify(
            self.sink,
            notifications.QuizEvent(
                event_type=notifications.SUBMISSION_RECORDED,
                quiz_id=str(quiz_id),
                recipient_id=owner_id,
                message=f"{payload.student_name} submitted \"{quiz_name}\" ({grade.letter_grade})",
                meta={"submission_id": str(submission_id)},
            ),
        )

        return SubmissionOutcome(
            submission=submission,
            answers=answers,
            show_results=show_results,
            payload=rendered,
            warnings=warnings,
        )

    def remove_submission(self, actor: Identity, quiz_id: uuid.UUID, submission_id: uuid.UUID) -> list[str]:
        quiz = self.repo.get_quiz(quiz_id, for_update=True)
        if quiz is None or not actor.owns(quiz.owner_id):
            self.repo.rollback()
            raise errors.NotFoundError("quiz not found or access denied")

        submission = self.repo.get_submission(submission_id)
        if submission is None or submission.quiz_id != quiz.id:
            self.repo.rollback()
            raise errors.NotFoundError("submission not found")

        self.repo.delete_submission(submission.id)
        self.repo.commit()
        log.info("submission removed quiz_id=%s submission_id=%s by=%s", quiz_id, submission_id, actor.user_id)

        warnings: list[str] = []
        try:
            self.aggregator.recompute(quiz_id)
        except errors.StorageError:
            log.warning("stats refresh failed after removal quiz_id=%s", quiz_id)
            warnings.append(STATS_REFRESH_WARNING)
        return warnings
