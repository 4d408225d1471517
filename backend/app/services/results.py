from __future__ import annotations

import csv
import io
import math
import uuid
from typing import Any

from app.core import errors
from app.core.config import settings
from app.core.security import Identity, UserRole
from app.models.quiz import Quiz
from app.services.quiz_payloads import iso, quiz_metadata, quiz_stats, submission_payload
from app.services.quiz_repository import QuizRepository
from app.services.statistics import compute_statistics

CSV_HEADER = ["studentName", "studentId", "score", "percentage", "grade", "timeSpent", "submittedAt"]


class ResultsService:
    def __init__(self, repo: QuizRepository) -> None:
        self.repo = repo

    def _owned_quiz(self, actor: Identity, quiz_id: uuid.UUID) -> Quiz:
        quiz = self.repo.get_quiz(quiz_id)
        if quiz is None or not actor.owns(quiz.owner_id):
            raise errors.NotFoundError("quiz not found or access denied")
        return quiz

    def list_quizzes(
        self,
        actor: Identity,
        *,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        category: str = "",
        status: str = "all",
    ) -> dict[str, Any]:
        page = max(1, int(page))
        limit = max(1, min(int(limit), int(settings.quiz_list_max_limit)))
        status = (status or "all").strip().lower()
        if status not in {"all", "active", "ended"}:
            raise errors.ValidationError(f"unsupported status filter {status!r}")

        owner_id = None
        public_only = False
        if actor.role == UserRole.faculty:
            owner_id = actor.user_id
        elif actor.role == UserRole.student:
            public_only = True

        active = None if status == "all" else status == "active"
        rows, total = self.repo.list_quizzes(
            owner_id=owner_id,
            public_only=public_only,
            search=search,
            category=category,
            active=active,
            offset=(page - 1) * limit,
            limit=limit,
        )

        items = []
        for quiz in rows:
            item = quiz_metadata(quiz)
            item["stats"] = quiz_stats(quiz)
            item["can_take"] = bool(quiz.is_active)
            if actor.owns(quiz.owner_id):
                item["password"] = quiz.password
            items.append(item)

        return {
            "quizzes": items,
            "pagination": {
                "current_page": page,
                "total_pages": math.ceil(total / limit) if total else 0,
                "total_quizzes": total,
                "has_next_page": page * limit < total,
                "has_prev_page": page > 1,
            },
        }

    def quiz_results(self, actor: Identity, quiz_id: uuid.UUID) -> dict[str, Any]:
        quiz = self._owned_quiz(actor, quiz_id)
        submissions = self.repo.list_submissions(quiz.id)
        answers = self.repo.get_answers([s.id for s in submissions])

        statistics = quiz_stats(quiz)
        count = len(submissions)
        statistics["average_time_spent"] = (
            round(sum(int(s.time_spent_seconds or 0) for s in submissions) / count) if count else 0
        )

        return {
            "quiz": quiz_metadata(quiz),
            "submissions": [submission_payload(s, answers.get(s.id, [])) for s in submissions],
            "statistics": statistics,
        }

    def student_results(self, actor: Identity, quiz_id: uuid.UUID) -> dict[str, Any]:
        quiz = self.repo.get_quiz(quiz_id)
        if quiz is None:
            raise errors.NotFoundError("quiz not found")

        mine = self.repo.list_user_submissions(actor.user_id, quiz_id=quiz.id)
        if not mine:
            raise errors.NotFoundError("no submissions found for this quiz")
        latest = mine[0]
        answers = self.repo.get_answers([latest.id]).get(latest.id, [])

        everyone = self.repo.list_submissions(quiz.id)
        class_stats = compute_statistics(everyone)
        better = sum(1 for s in everyone if float(s.percentage) > float(latest.percentage))
        rank = better + 1
        total_students = len(everyone)
        total_q = int(latest.total_questions or 0)
        correct = int(latest.correct_answers or 0)

        return {
            "quiz": quiz_metadata(quiz),
            "submission": submission_payload(latest, answers, show_results=bool(quiz.show_results)),
            "performance": {
                "correct_answers": correct,
                "incorrect_answers": total_q - correct,
                "accuracy": round(correct / total_q * 100) if total_q else 0,
                "rank": rank,
                "total_students": total_students,
                "better_than_percent": round((total_students - rank) / total_students * 100) if total_students else 0,
            },
            "class_statistics": {
                "total_submissions": class_stats.total_submissions,
                "average_score": class_stats.average_score,
                "highest_score": class_stats.highest_score,
                "lowest_score": class_stats.lowest_score,
            },
            "attempts": [submission_payload(s, show_results=False) for s in mine],
        }

    def my_submissions(self, actor: Identity) -> list[dict[str, Any]]:
        rows = self.repo.list_user_submissions(actor.user_id)
        names = self.repo.get_quiz_names(s.quiz_id for s in rows)
        out = []
        for s in rows:
            item = submission_payload(s, show_results=False)
            item["quiz_name"] = names.get(s.quiz_id, "")
            out.append(item)
        return out

    def export_csv(self, actor: Identity, quiz_id: uuid.UUID) -> tuple[str, str]:
        """Return (filename, csv text) of the quiz's submissions."""
        quiz = self._owned_quiz(actor, quiz_id)
        submissions = self.repo.list_submissions(quiz.id)

        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(CSV_HEADER)
        for s in submissions:
            writer.writerow(
                [
                    s.student_name,
                    s.student_id,
                    f"{int(s.total_score)}/{int(s.max_score)}",
                    f"{float(s.percentage):.2f}",
                    s.letter_grade,
                    int(s.time_spent_seconds or 0),
                    iso(s.submitted_at) or "",
                ]
            )

        safe_name = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in quiz.name).strip("_") or "quiz"
        return f"{safe_name}_results.csv", buf.getvalue()
