"""Quiz creation, editing and the manual Active/Ended switch.

State machine::

    ACTIVE --end--> ENDED --activate--> ACTIVE

A new quiz starts ACTIVE. Repeating the current state (end on an ended quiz,
activate on an active one) is a ConflictError. Faculty manage their own
quizzes; admins manage any quiz. A quiz that is not visible to the caller is
reported as not found.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.core import errors
from app.core.config import settings
from app.core.security import Identity
from app.models.quiz import Question, QuestionType, Quiz, QuizDifficulty, utcnow
from app.schemas.quiz import QuestionDraft, QuizDraft
from app.services import notifications
from app.services.quiz_repository import QuizRepository
from app.services.statistics import QuizStatistics

log = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 6
MIN_POINTS = 1
MAX_POINTS = 10
TRUE_FALSE_OPTIONS = ["True", "False"]


@dataclass(frozen=True)
class UpdateResult:
    quiz: Quiz
    questions: list[Question]
    questions_modified: bool

    @property
    def restricted_update(self) -> str | None:
        if self.questions_modified:
            return None
        return "questions cannot be modified after submissions"


def _question_type(raw: str | None) -> QuestionType | None:
    value = (raw or QuestionType.multiple_choice.value).strip().lower()
    for t in QuestionType:
        if t.value == value or t.name == value:
            return t
    return None


def _build_questions(drafts: list[QuestionDraft], problems: list[str]) -> list[Question]:
    if not drafts:
        problems.append("at least one question is required")
        return []

    built: list[Question] = []
    for i, d in enumerate(drafts, start=1):
        label = f"question {i}"
        text = (d.question or "").strip()
        if not text:
            problems.append(f"{label}: text is required")

        qtype = _question_type(d.type)
        if qtype is None:
            problems.append(f"{label}: unsupported type {d.type!r}")
            qtype = QuestionType.multiple_choice

        if qtype == QuestionType.true_false:
            options = list(TRUE_FALSE_OPTIONS)
        else:
            options = [str(o).strip() for o in (d.options or [])]
            if any(not o for o in options):
                problems.append(f"{label}: options must not be empty")
            options = [o for o in options if o]
            if len(options) < MIN_OPTIONS:
                problems.append(f"{label}: must have at least {MIN_OPTIONS} options")
            elif len(options) > MAX_OPTIONS:
                problems.append(f"{label}: must have at most {MAX_OPTIONS} options")

        correct = (d.correct_answer or "").strip()
        if not correct:
            problems.append(f"{label}: correct answer is required")
        elif correct not in options:
            problems.append(f"{label}: correct answer must be one of the options")

        points = MIN_POINTS if d.points is None else d.points
        if isinstance(points, float) and points.is_integer():
            points = int(points)
        if isinstance(points, bool) or not isinstance(points, int):
            problems.append(f"{label}: points must be a whole number")
            points = MIN_POINTS
        elif not MIN_POINTS <= points <= MAX_POINTS:
            problems.append(f"{label}: points must be between {MIN_POINTS} and {MAX_POINTS}")

        built.append(
            Question(
                position=i,
                type=qtype,
                prompt=text,
                options=options,
                correct_answer=correct,
                points=points,
                explanation=(d.explanation or "").strip(),
            )
        )
    return built


def _metadata(draft: QuizDraft, problems: list[str], *, current_password: str | None = None) -> dict:
    name = (draft.name or "").strip()
    if not name:
        problems.append("quiz name is required")

    time_limit = draft.time_limit_minutes
    if time_limit is None:
        time_limit = int(settings.quiz_default_time_limit_minutes)
    elif time_limit <= 0:
        problems.append("time limit must be a positive number of minutes")

    difficulty = QuizDifficulty.medium
    if draft.difficulty:
        try:
            difficulty = QuizDifficulty(draft.difficulty.strip().lower())
        except ValueError:
            problems.append(f"unsupported difficulty {draft.difficulty!r}")

    password = (draft.password or "").strip() or None
    if draft.is_public:
        password = None
    else:
        password = password or current_password
        if not password:
            problems.append("password is required for private quizzes")

    return {
        "name": name,
        "description": (draft.description or "").strip(),
        "category": (draft.category or "").strip() or "general",
        "difficulty": difficulty,
        "time_limit_minutes": time_limit,
        "is_public": bool(draft.is_public),
        "password": password,
        "allow_retakes": bool(draft.allow_retakes),
        "show_results": bool(draft.show_results),
    }


def validate_draft(draft: QuizDraft) -> tuple[dict, list[Question]]:
    """Check a full quiz draft, collecting every violation."""
    problems: list[str] = []
    fields = _metadata(draft, problems)
    questions = _build_questions(list(draft.questions or []), problems)
    if problems:
        raise errors.ValidationError(problems)
    return fields, questions


class QuizLifecycleManager:
    def __init__(self, repo: QuizRepository, sink: notifications.NotificationSink | None = None) -> None:
        self.repo = repo
        self.sink = sink

    def _owned_quiz(self, actor: Identity, quiz_id: uuid.UUID, *, for_update: bool = False) -> Quiz:
        quiz = self.repo.get_quiz(quiz_id, for_update=for_update)
        if quiz is None or not actor.owns(quiz.owner_id):
            raise errors.NotFoundError("quiz not found or access denied")
        return quiz

    def create(self, actor: Identity, draft: QuizDraft) -> tuple[Quiz, list[Question]]:
        fields, questions = validate_draft(draft)
        now = utcnow()
        quiz = Quiz(
            id=uuid.uuid4(),
            owner_id=actor.user_id,
            owner_name=actor.name or actor.user_id,
            is_active=True,
            total_points=sum(q.points for q in questions),
            total_questions=len(questions),
            stats=QuizStatistics().as_dict(),
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.repo.add_quiz(quiz, questions)
        self.repo.commit()
        log.info("quiz created quiz_id=%s owner=%s questions=%s", quiz.id, actor.user_id, len(questions))
        return quiz, self.repo.get_questions(quiz.id)

    def update(self, actor: Identity, quiz_id: uuid.UUID, draft: QuizDraft) -> UpdateResult:
        quiz = self._owned_quiz(actor, quiz_id, for_update=True)
        has_submissions = self.repo.count_submissions(quiz.id) > 0

        problems: list[str] = []
        fields = _metadata(draft, problems, current_password=quiz.password)
        questions: list[Question] = []
        if not has_submissions:
            questions = _build_questions(list(draft.questions or []), problems)
        if problems:
            self.repo.rollback()
            raise errors.ValidationError(problems)

        for key, value in fields.items():
            setattr(quiz, key, value)
        if not has_submissions:
            self.repo.replace_questions(quiz.id, questions)
            quiz.total_points = sum(q.points for q in questions)
            quiz.total_questions = len(questions)
        quiz.updated_at = utcnow()
        self.repo.commit()

        log.info("quiz updated quiz_id=%s questions_modified=%s", quiz_id, not has_submissions)
        return UpdateResult(
            quiz=quiz,
            questions=self.repo.get_questions(quiz_id),
            questions_modified=not has_submissions,
        )

    def end(self, actor: Identity, quiz_id: uuid.UUID) -> Quiz:
        now = utcnow()
        changed = self.repo.set_active(
            quiz_id,
            expected_active=True,
            owner_id=None if actor.is_admin else actor.user_id,
            values={"is_active": False, "ended_at": now, "updated_at": now},
        )
        if not changed:
            self.repo.rollback()
            self._owned_quiz(actor, quiz_id)
            raise errors.ConflictError("quiz is already ended")
        self.repo.commit()

        quiz = self._owned_quiz(actor, quiz_id)
        log.info("quiz ended quiz_id=%s by=%s", quiz_id, actor.user_id)
        notifications.safe_notify(
            self.sink,
            notifications.QuizEvent(
                event_type=notifications.QUIZ_ENDED,
                quiz_id=str(quiz_id),
                recipient_id=quiz.owner_id,
                message=f"Quiz \"{quiz.name}\" has ended",
            ),
        )
        return quiz

    def activate(self, actor: Identity, quiz_id: uuid.UUID) -> Quiz:
        now = utcnow()
        changed = self.repo.set_active(
            quiz_id,
            expected_active=False,
            owner_id=None if actor.is_admin else actor.user_id,
            values={"is_active": True, "ended_at": None, "reactivated_at": now, "updated_at": now},
        )
        if not changed:
            self.repo.rollback()
            self._owned_quiz(actor, quiz_id)
            raise errors.ConflictError("quiz is already active")
        self.repo.commit()

        quiz = self._owned_quiz(actor, quiz_id)
        log.info("quiz activated quiz_id=%s by=%s", quiz_id, actor.user_id)
        notifications.safe_notify(
            self.sink,
            notifications.QuizEvent(
                event_type=notifications.QUIZ_ACTIVATED,
                quiz_id=str(quiz_id),
                recipient_id=quiz.owner_id,
                message=f"Quiz \"{quiz.name}\" is active again",
            ),
        )
        return quiz

    def delete(self, actor: Identity, quiz_id: uuid.UUID) -> None:
        quiz = self._owned_quiz(actor, quiz_id, for_update=True)
        if self.repo.count_submissions(quiz.id) > 0:
            self.repo.rollback()
            raise errors.ConflictError("cannot delete a quiz with existing submissions; end it instead")
        self.repo.delete_quiz(quiz.id)
        self.repo.commit()
        log.info("quiz deleted quiz_id=%s by=%s", quiz_id, actor.user_id)
