from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.security import Identity, get_current_user
from app.routers.quizzes import get_results
from app.services.results import ResultsService

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def me(user: Identity = Depends(get_current_user)):
    return {"id": user.user_id, "role": user.role.value, "name": user.name}


@router.get("/submissions")
def my_submissions(
    user: Identity = Depends(get_current_user),
    results: ResultsService = Depends(get_results),
):
    return {"submissions": results.my_submissions(user)}
