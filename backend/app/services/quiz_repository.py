"""Persistence for quizzes and their submissions.

Every public method runs inside :meth:`QuizRepository.guard`, so driver and
connection failures reach callers as :class:`app.core.errors.StorageError`.
Unique-constraint violations are left as ``IntegrityError`` because the
submission flow turns them into a domain error.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import errors
from app.models.quiz import Question, Quiz
from app.models.submission import QuizSubmission, SubmissionAnswer

log = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QuizRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def guard(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            log.warning("storage failure: %s", e.__class__.__name__)
            try:
                self.db.rollback()
            except SQLAlchemyError:
                pass
            raise errors.StorageError() from e

    def commit(self) -> None:
        with self.guard():
            self.db.commit()

    def rollback(self) -> None:
        with self.guard():
            self.db.rollback()

    # quizzes

    def get_quiz(self, quiz_id: uuid.UUID, *, for_update: bool = False) -> Quiz | None:
        stmt = select(Quiz).where(Quiz.id == quiz_id)
        if for_update:
            stmt = stmt.with_for_update()
        with self.guard():
            return self.db.scalar(stmt)

    def get_questions(self, quiz_id: uuid.UUID) -> list[Question]:
        with self.guard():
            return list(self.db.scalars(select(Question).where(Question.quiz_id == quiz_id).order_by(Question.position)))

    def find_by_password(self, code: str) -> Quiz | None:
        """Newest quiz whose classroom code equals ``code`` exactly."""
        stmt = select(Quiz).where(Quiz.password == code).order_by(Quiz.created_at.desc()).limit(1)
        with self.guard():
            return self.db.scalar(stmt)

    def add_quiz(self, quiz: Quiz, questions: Iterable[Question]) -> Quiz:
        with self.guard():
            self.db.add(quiz)
            self.db.flush()
            for q in questions:
                q.quiz_id = quiz.id
                self.db.add(q)
            self.db.flush()
        return quiz

    def replace_questions(self, quiz_id: uuid.UUID, questions: Iterable[Question]) -> None:
        with self.guard():
            self.db.execute(delete(Question).where(Question.quiz_id == quiz_id))
            self.db.flush()
            for q in questions:
                q.quiz_id = quiz_id
                self.db.add(q)
            self.db.flush()

    def set_active(
        self,
        quiz_id: uuid.UUID,
        *,
        expected_active: bool,
        owner_id: str | None,
        values: dict,
    ) -> bool:
        """Compare-and-swap on ``is_active``. Returns False when nothing matched."""
        stmt = update(Quiz).where(Quiz.id == quiz_id, Quiz.is_active == expected_active)
        if owner_id is not None:
            stmt = stmt.where(Quiz.owner_id == owner_id)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        with self.guard():
            result = self.db.execute(stmt)
        return bool(result.rowcount)

    def delete_quiz(self, quiz_id: uuid.UUID) -> None:
        with self.guard():
            self.db.execute(delete(Question).where(Question.quiz_id == quiz_id))
            self.db.execute(delete(Quiz).where(Quiz.id == quiz_id))

    def write_stats(self, quiz_id: uuid.UUID, *, stats: dict, last_submission_at: datetime | None) -> bool:
        stmt = (
            update(Quiz)
            .where(Quiz.id == quiz_id)
            .values(stats=stats, last_submission_at=last_submission_at)
            .execution_options(synchronize_session=False)
        )
        with self.guard():
            result = self.db.execute(stmt)
        return bool(result.rowcount)

    def list_quizzes(
        self,
        *,
        owner_id: str | None = None,
        public_only: bool = False,
        search: str = "",
        category: str = "",
        active: bool | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Quiz], int]:
        conds = []
        if owner_id is not None:
            conds.append(Quiz.owner_id == owner_id)
        if public_only:
            conds.append(Quiz.is_public.is_(True))
        term = (search or "").strip()
        if term:
            like = f"%{_escape_like(term.lower())}%"
            conds.append(
                or_(
                    func.lower(Quiz.name).like(like, escape="\\"),
                    func.lower(Quiz.description).like(like, escape="\\"),
                    func.lower(Quiz.category).like(like, escape="\\"),
                )
            )
        if category and category != "all":
            conds.append(Quiz.category == category)
        if active is not None:
            conds.append(Quiz.is_active.is_(active))

        with self.guard():
            total = self.db.scalar(select(func.count(Quiz.id)).where(*conds)) or 0
            rows = list(
                self.db.scalars(
                    select(Quiz).where(*conds).order_by(Quiz.created_at.desc()).offset(offset).limit(limit)
                )
            )
        return rows, int(total)

    # submissions

    def count_submissions(self, quiz_id: uuid.UUID) -> int:
        with self.guard():
            return int(
                self.db.scalar(select(func.count(QuizSubmission.id)).where(QuizSubmission.quiz_id == quiz_id)) or 0
            )

    def has_student_submission(self, quiz_id: uuid.UUID, student_id: str) -> bool:
        stmt = (
            select(QuizSubmission.id)
            .where(QuizSubmission.quiz_id == quiz_id, QuizSubmission.student_id == student_id)
            .limit(1)
        )
        with self.guard():
            return self.db.scalar(stmt) is not None

    def add_submission(self, submission: QuizSubmission, answers: Sequence[SubmissionAnswer]) -> QuizSubmission:
        with self.guard():
            self.db.add(submission)
            self.db.flush()
            for a in answers:
                a.submission_id = submission.id
                self.db.add(a)
            self.db.flush()
        return submission

    def get_submission(self, submission_id: uuid.UUID) -> QuizSubmission | None:
        with self.guard():
            return self.db.scalar(select(QuizSubmission).where(QuizSubmission.id == submission_id))

    def list_submissions(self, quiz_id: uuid.UUID, *, newest_first: bool = True) -> list[QuizSubmission]:
        order = QuizSubmission.submitted_at.desc() if newest_first else QuizSubmission.submitted_at.asc()
        with self.guard():
            return list(self.db.scalars(select(QuizSubmission).where(QuizSubmission.quiz_id == quiz_id).order_by(order)))

    def list_user_submissions(self, user_id: str, *, quiz_id: uuid.UUID | None = None) -> list[QuizSubmission]:
        stmt = select(QuizSubmission).where(QuizSubmission.submitted_by == user_id)
        if quiz_id is not None:
            stmt = stmt.where(QuizSubmission.quiz_id == quiz_id)
        with self.guard():
            return list(self.db.scalars(stmt.order_by(QuizSubmission.submitted_at.desc())))

    def get_answers(self, submission_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, list[SubmissionAnswer]]:
        out: dict[uuid.UUID, list[SubmissionAnswer]] = {sid: [] for sid in submission_ids}
        if not submission_ids:
            return out
        stmt = (
            select(SubmissionAnswer)
            .where(SubmissionAnswer.submission_id.in_(list(submission_ids)))
            .order_by(SubmissionAnswer.submission_id, SubmissionAnswer.position)
        )
        with self.guard():
            for row in self.db.scalars(stmt):
                out.setdefault(row.submission_id, []).append(row)
        return out

    def delete_submission(self, submission_id: uuid.UUID) -> None:
        with self.guard():
            self.db.execute(delete(SubmissionAnswer).where(SubmissionAnswer.submission_id == submission_id))
            self.db.execute(delete(QuizSubmission).where(QuizSubmission.id == submission_id))

    def get_quiz_names(self, quiz_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
        ids = list({q for q in quiz_ids})
        if not ids:
            return {}
        with self.guard():
            rows = self.db.execute(select(Quiz.id, Quiz.name).where(Quiz.id.in_(ids))).all()
        return {row.id: row.name for row in rows}
