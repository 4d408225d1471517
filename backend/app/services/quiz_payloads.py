from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from app.models.quiz import Question, Quiz
from app.models.submission import QuizSubmission, SubmissionAnswer
from app.services.statistics import QuizStatistics


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def quiz_metadata(quiz: Quiz) -> dict[str, Any]:
    """Fields any authenticated caller may see, including before a password check."""
    return {
        "id": str(quiz.id),
        "name": quiz.name,
        "description": quiz.description or "",
        "category": quiz.category,
        "difficulty": getattr(quiz.difficulty, "value", quiz.difficulty),
        "total_questions": int(quiz.total_questions or 0),
        "total_points": int(quiz.total_points or 0),
        "time_limit_minutes": int(quiz.time_limit_minutes or 0),
        "is_public": bool(quiz.is_public),
        "allow_retakes": bool(quiz.allow_retakes),
        "show_results": bool(quiz.show_results),
        "is_active": bool(quiz.is_active),
        "status": quiz.state.value,
        "owner_name": quiz.owner_name or "",
        "created_at": iso(quiz.created_at),
    }


def question_payload(question: Question, *, with_answer: bool) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": int(question.position),
        "question": question.prompt,
        "type": getattr(question.type, "value", question.type),
        "options": list(question.options or []),
        "points": int(question.points),
    }
    if with_answer:
        data["correct_answer"] = question.correct_answer
        data["explanation"] = question.explanation or ""
    return data


def quiz_stats(quiz: Quiz) -> dict[str, Any]:
    return dict(quiz.stats) if quiz.stats else QuizStatistics().as_dict()


def quiz_owner_view(quiz: Quiz, questions: Sequence[Question]) -> dict[str, Any]:
    data = quiz_metadata(quiz)
    data.update(
        {
            "questions": [question_payload(q, with_answer=True) for q in questions],
            "password": quiz.password,
            "owner_id": quiz.owner_id,
            "stats": quiz_stats(quiz),
            "ended_at": iso(quiz.ended_at),
            "reactivated_at": iso(quiz.reactivated_at),
            "last_submission_at": iso(quiz.last_submission_at),
            "updated_at": iso(quiz.updated_at),
        }
    )
    return data


def quiz_taker_view(quiz: Quiz, questions: Sequence[Question]) -> dict[str, Any]:
    data = quiz_metadata(quiz)
    data["questions"] = [question_payload(q, with_answer=False) for q in questions]
    data["requires_password"] = False
    return data


def quiz_preview(quiz: Quiz) -> dict[str, Any]:
    data = quiz_metadata(quiz)
    data["requires_password"] = True
    return data


def answer_payload(a: SubmissionAnswer) -> dict[str, Any]:
    return {
        "question_id": int(a.position),
        "question": a.question,
        "student_answer": a.student_answer,
        "correct_answer": a.correct_answer,
        "is_correct": bool(a.is_correct),
        "points_awarded": int(a.points_awarded),
        "max_points": int(a.max_points),
    }


def submission_payload(
    s: QuizSubmission,
    answers: Sequence[SubmissionAnswer] | None = None,
    *,
    show_results: bool = True,
) -> dict[str, Any]:
    return {
        "submission_id": str(s.id),
        "quiz_id": str(s.quiz_id),
        "student_id": s.student_id,
        "student_name": s.student_name,
        "total_score": int(s.total_score),
        "max_score": int(s.max_score),
        "percentage": float(s.percentage),
        "correct_answers": int(s.correct_answers),
        "total_questions": int(s.total_questions),
        "grade": s.letter_grade,
        "time_spent_seconds": int(s.time_spent_seconds or 0),
        "submitted_at": iso(s.submitted_at),
        "show_results": bool(show_results),
        "answers": [answer_payload(a) for a in answers] if (show_results and answers is not None) else None,
    }
