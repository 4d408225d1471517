from __future__ import annotations

from typing import Any


class QuizError(Exception):
    """Base class for every error the quiz engine reports to its callers."""

    status_code: int = 400
    error_code: str = "quiz_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error_code": self.error_code, "error_message": self.message}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(QuizError):
    """Malformed input: quiz draft, question or submission shape.

    ``errors`` lists every violation found, not just the first one.
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        message = self.errors[0] if len(self.errors) == 1 else f"{len(self.errors)} validation errors"
        super().__init__(message, details={"errors": self.errors})


class NotFoundError(QuizError):
    status_code = 404
    error_code = "not_found"


class ConflictError(QuizError):
    status_code = 409
    error_code = "conflict"


class AuthorizationError(QuizError):
    status_code = 403
    error_code = "invalid_password"


class QuizInactiveError(QuizError):
    status_code = 409
    error_code = "quiz_inactive"

    def __init__(self, message: str = "quiz is not active") -> None:
        super().__init__(message)


class DuplicateSubmissionError(QuizError):
    status_code = 409
    error_code = "duplicate_submission"

    def __init__(self, message: str = "you have already submitted this quiz") -> None:
        super().__init__(message)


class StorageError(QuizError):
    """Persistence failure. Callers may retry."""

    status_code = 503
    error_code = "storage_unavailable"
    retryable = True

    def __init__(self, message: str = "storage unavailable") -> None:
        super().__init__(message, details={"retryable": True})
