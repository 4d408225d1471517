"""Scoring of submitted answer sets and the admission rules that gate it."""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Any, Sequence

from app.core import errors
from app.models.quiz import Question, Quiz

PASS_THRESHOLD = 60.0

# Inclusive lower bounds, checked top-down.
GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (97.0, "A+"),
    (93.0, "A"),
    (90.0, "A-"),
    (87.0, "B+"),
    (83.0, "B"),
    (80.0, "B-"),
    (77.0, "C+"),
    (73.0, "C"),
    (70.0, "C-"),
    (67.0, "D+"),
    (63.0, "D"),
    (60.0, "D-"),
)

COARSE_GRADES: tuple[str, ...] = ("A", "B", "C", "D", "F")


def letter_grade(percentage: float) -> str:
    for lower, grade in GRADE_THRESHOLDS:
        if percentage >= lower:
            return grade
    return "F"


def coarse_grade(grade: str) -> str:
    """Collapse A+/A/A- style grades to the bare letter."""
    letter = (grade or "F")[:1].upper()
    return letter if letter in COARSE_GRADES else "F"


def password_matches(quiz: Quiz, supplied: str | None) -> bool:
    expected = quiz.password or ""
    if not expected:
        return True
    if supplied is None:
        return False
    return hmac.compare_digest(str(supplied).encode("utf-8"), expected.encode("utf-8"))


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    question: str
    student_answer: str
    correct_answer: str
    is_correct: bool
    points_awarded: int
    max_points: int


@dataclass(frozen=True)
class GradeResult:
    results: list[QuestionResult] = field(default_factory=list)
    total_score: int = 0
    max_score: int = 0
    percentage: float = 0.0
    letter_grade: str = "F"

    @property
    def correct_answers(self) -> int:
        return sum(1 for r in self.results if r.is_correct)

    @property
    def total_questions(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class SubmissionPayload:
    student_id: str
    student_name: str
    answers: list[str]
    time_spent_seconds: int = 0
    password: str | None = None


class GradingEngine:
    def grade(self, quiz: Quiz, questions: Sequence[Question], answers: Sequence[str]) -> GradeResult:
        results: list[QuestionResult] = []
        total = 0
        for index, question in enumerate(questions):
            answer = answers[index] if index < len(answers) else ""
            answer = answer if answer is not None else ""
            ok = answer == question.correct_answer and answer != ""
            awarded = int(question.points) if ok else 0
            total += awarded
            results.append(
                QuestionResult(
                    question_id=int(question.position),
                    question=question.prompt,
                    student_answer=answer,
                    correct_answer=question.correct_answer,
                    is_correct=ok,
                    points_awarded=awarded,
                    max_points=int(question.points),
                )
            )

        max_score = int(quiz.total_points or 0)
        percentage = (total / max_score) * 100.0 if max_score > 0 else 0.0
        percentage = min(100.0, max(0.0, percentage))
        return GradeResult(
            results=results,
            total_score=total,
            max_score=max_score,
            percentage=percentage,
            letter_grade=letter_grade(percentage),
        )

    def validate_payload(self, raw: dict[str, Any], *, question_count: int) -> SubmissionPayload:
        problems: list[str] = []

        student_id = str(raw.get("student_id") or "").strip()
        student_name = str(raw.get("student_name") or "").strip()
        if not student_id:
            problems.append("student_id is required")
        if not student_name:
            problems.append("student_name is required")

        answers = raw.get("answers")
        if not isinstance(answers, list):
            problems.append("answers must be a list")
            answers = []
        elif any(a is not None and not isinstance(a, str) for a in answers):
            problems.append("answers must be strings")
        elif len(answers) > question_count:
            problems.append(f"expected at most {question_count} answers, got {len(answers)}")

        time_spent = raw.get("time_spent_seconds") or 0
        try:
            time_spent = int(time_spent)
        except (TypeError, ValueError):
            problems.append("time_spent_seconds must be an integer")
            time_spent = 0
        if time_spent < 0:
            problems.append("time_spent_seconds must not be negative")

        if problems:
            raise errors.ValidationError(problems)

        return SubmissionPayload(
            student_id=student_id,
            student_name=student_name,
            answers=[a if a is not None else "" for a in answers],
            time_spent_seconds=time_spent,
            password=raw.get("password"),
        )

    def admit(self, quiz: Quiz, *, password: str | None, prior_submission_exists: bool) -> None:
        if not quiz.is_active:
            raise errors.QuizInactiveError()

        if not quiz.is_public and not password_matches(quiz, password):
            raise errors.AuthorizationError("invalid quiz password")

        if not quiz.allow_retakes and prior_submission_exists:
            raise errors.DuplicateSubmissionError()
