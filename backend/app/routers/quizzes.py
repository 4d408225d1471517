from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core import errors
from app.core.rate_limit import rate_limit
from app.core.security import Identity, UserRole, get_current_user, require_roles
from app.db.session import get_db
from app.schemas.quiz import (
    QuizCreateResponse,
    QuizDraft,
    QuizTransitionResponse,
    QuizUpdateResponse,
    SubmissionRequest,
    SubmissionResponse,
)
from app.services.access_gate import AccessGate, AccessKind
from app.services.notifications import NotificationSink, get_notification_sink
from app.services.quiz_lifecycle import QuizLifecycleManager
from app.services.quiz_payloads import iso, quiz_owner_view
from app.services.quiz_repository import QuizRepository
from app.services.results import ResultsService
from app.services.submissions import SubmissionService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])

manager_only = require_roles(UserRole.faculty)
student_only = require_roles(UserRole.student)


def _uuid(value: str, *, field: str = "quiz id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"invalid {field}") from e


def get_repo(db: Session = Depends(get_db)) -> QuizRepository:
    return QuizRepository(db)


def get_lifecycle(
    repo: QuizRepository = Depends(get_repo),
    sink: NotificationSink = Depends(get_notification_sink),
) -> QuizLifecycleManager:
    return QuizLifecycleManager(repo, sink)


def get_submissions(
    repo: QuizRepository = Depends(get_repo),
    sink: NotificationSink = Depends(get_notification_sink),
) -> SubmissionService:
    return SubmissionService(repo, sink=sink)


def get_results(repo: QuizRepository = Depends(get_repo)) -> ResultsService:
    return ResultsService(repo)


def _transition_response(message: str, quiz) -> QuizTransitionResponse:
    return QuizTransitionResponse(
        message=message,
        quiz_id=str(quiz.id),
        is_active=bool(quiz.is_active),
        ended_at=iso(quiz.ended_at),
        reactivated_at=iso(quiz.reactivated_at),
    )


@router.get("")
def list_quizzes(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    search: str = "",
    category: str = "",
    status: str = "all",
    user: Identity = Depends(get_current_user),
    results: ResultsService = Depends(get_results),
):
    return results.list_quizzes(user, page=page, limit=limit, search=search, category=category, status=status)


@router.post("", status_code=201, response_model=QuizCreateResponse)
def create_quiz(
    body: QuizDraft,
    user: Identity = Depends(manager_only),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    quiz, questions = lifecycle.create(user, body)
    return QuizCreateResponse(
        message="quiz created",
        quiz_id=str(quiz.id),
        password=quiz.password,
        quiz=quiz_owner_view(quiz, questions),
    )


@router.get("/join")
def join_quiz(
    code: str = "",
    user: Identity = Depends(get_current_user),
    repo: QuizRepository = Depends(get_repo),
):
    code = code.strip()
    if not code:
        raise errors.ValidationError("code is required")
    quiz = repo.find_by_password(code)
    questions = repo.get_questions(quiz.id) if quiz is not None else []
    decision = AccessGate().resolve_access(user, quiz, code, questions)
    if decision.kind == AccessKind.denied:
        raise errors.NotFoundError("no quiz matches this code")
    return decision.payload


@router.get("/{quiz_id}")
def get_quiz(
    quiz_id: str,
    password: str | None = None,
    user: Identity = Depends(get_current_user),
    repo: QuizRepository = Depends(get_repo),
):
    qid = _uuid(quiz_id)
    quiz = repo.get_quiz(qid)
    questions = repo.get_questions(qid) if quiz is not None else []
    decision = AccessGate().resolve_access(user, quiz, password, questions)
    if decision.kind == AccessKind.denied:
        raise errors.NotFoundError("quiz not found or access denied")
    return decision.payload


@router.put("/{quiz_id}", response_model=QuizUpdateResponse)
def update_quiz(
    quiz_id: str,
    body: QuizDraft,
    user: Identity = Depends(manager_only),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    result = lifecycle.update(user, _uuid(quiz_id), body)
    return QuizUpdateResponse(
        message="quiz updated",
        questions_modified=result.questions_modified,
        restricted_update=result.restricted_update,
        quiz=quiz_owner_view(result.quiz, result.questions),
    )


@router.delete("/{quiz_id}")
def delete_quiz(
    quiz_id: str,
    user: Identity = Depends(manager_only),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    lifecycle.delete(user, _uuid(quiz_id))
    return {"ok": True, "message": "quiz deleted"}


@router.post("/{quiz_id}/end", response_model=QuizTransitionResponse)
def end_quiz(
    quiz_id: str,
    user: Identity = Depends(manager_only),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    quiz = lifecycle.end(user, _uuid(quiz_id))
    return _transition_response("quiz ended", quiz)


@router.post("/{quiz_id}/activate", response_model=QuizTransitionResponse)
def activate_quiz(
    quiz_id: str,
    user: Identity = Depends(manager_only),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    quiz = lifecycle.activate(user, _uuid(quiz_id))
    return _transition_response("quiz activated", quiz)


@router.post("/{quiz_id}/submissions", response_model=SubmissionResponse)
def submit_quiz(
    quiz_id: str,
    body: SubmissionRequest,
    user: Identity = Depends(student_only),
    _: object = rate_limit(key_prefix="quiz_submit"),
    service: SubmissionService = Depends(get_submissions),
):
    outcome = service.submit(user, _uuid(quiz_id), body.model_dump())
    return {
        "message": "quiz submitted",
        "submission": outcome.payload,
        "warnings": outcome.warnings,
    }


@router.delete("/{quiz_id}/submissions/{submission_id}")
def remove_submission(
    quiz_id: str,
    submission_id: str,
    user: Identity = Depends(manager_only),
    service: SubmissionService = Depends(get_submissions),
):
    warnings = service.remove_submission(user, _uuid(quiz_id), _uuid(submission_id, field="submission id"))
    return {"ok": True, "message": "submission removed", "warnings": warnings}


@router.get("/{quiz_id}/results")
def quiz_results(
    quiz_id: str,
    user: Identity = Depends(manager_only),
    results: ResultsService = Depends(get_results),
):
    return results.quiz_results(user, _uuid(quiz_id))


@router.get("/{quiz_id}/results/me")
def my_quiz_results(
    quiz_id: str,
    user: Identity = Depends(student_only),
    results: ResultsService = Depends(get_results),
):
    return results.student_results(user, _uuid(quiz_id))


@router.get("/{quiz_id}/results.csv")
def export_results_csv(
    quiz_id: str,
    user: Identity = Depends(manager_only),
    results: ResultsService = Depends(get_results),
):
    filename, body = results.export_csv(user, _uuid(quiz_id))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
