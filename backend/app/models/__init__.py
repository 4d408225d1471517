from app.models.quiz import Question, QuestionType, Quiz, QuizDifficulty, QuizState
from app.models.submission import QuizSubmission, SubmissionAnswer
from app.models.notification import QuizNotification

__all__ = [
    "Question",
    "QuestionType",
    "Quiz",
    "QuizDifficulty",
    "QuizState",
    "QuizSubmission",
    "SubmissionAnswer",
    "QuizNotification",
]
