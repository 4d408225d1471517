"""Decides what a caller may see of a quiz.

Two-phase contract for password-protected quizzes: a first request without the
password (or with a wrong one) gets a preview flagged ``requires_password``;
the client repeats the request with the password to receive the questions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Sequence

from app.core import errors
from app.core.security import Identity
from app.models.quiz import Question, Quiz
from app.services.grading import password_matches
from app.services.quiz_payloads import quiz_owner_view, quiz_preview, quiz_taker_view


class AccessKind(str, enum.Enum):
    denied = "denied"
    preview_only = "preview_only"
    full_access = "full_access"


@dataclass(frozen=True)
class AccessDecision:
    kind: AccessKind
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def requires_password(self) -> bool:
        return self.kind == AccessKind.preview_only


DENIED = AccessDecision(kind=AccessKind.denied)


class AccessGate:
    def resolve_access(
        self,
        requester: Identity,
        quiz: Quiz | None,
        supplied_password: str | None,
        questions: Sequence[Question] = (),
    ) -> AccessDecision:
        if quiz is None:
            return DENIED

        if requester.is_manager:
            if not requester.owns(quiz.owner_id):
                return DENIED
            # Owners see their quiz whatever its state.
            return AccessDecision(kind=AccessKind.full_access, payload=quiz_owner_view(quiz, questions))

        if not quiz.is_active:
            raise errors.QuizInactiveError()

        if not quiz.is_public and not password_matches(quiz, supplied_password):
            return AccessDecision(kind=AccessKind.preview_only, payload=quiz_preview(quiz))

        return AccessDecision(kind=AccessKind.full_access, payload=quiz_taker_view(quiz, questions))
