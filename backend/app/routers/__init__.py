from app.routers import health, me, quizzes

__all__ = [
    "health",
    "me",
    "quizzes",
]
