from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class QuestionDraft(BaseModel):
    question: str = ""
    type: str = "multiple-choice"
    options: list[str] = Field(default_factory=list)
    correct_answer: str = ""
    # Checked by the draft validator so every problem is reported together.
    points: Any = None
    explanation: str | None = None


class QuizDraft(BaseModel):
    name: str = ""
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    time_limit_minutes: int | None = None
    is_public: bool = False
    password: str | None = None
    allow_retakes: bool = False
    show_results: bool = True
    questions: list[QuestionDraft] = Field(default_factory=list)


class QuizCreateResponse(BaseModel):
    message: str
    quiz_id: str
    password: str | None
    quiz: dict


class QuizUpdateResponse(BaseModel):
    message: str
    questions_modified: bool
    restricted_update: str | None = None
    quiz: dict


class QuizTransitionResponse(BaseModel):
    message: str
    quiz_id: str
    is_active: bool
    ended_at: str | None = None
    reactivated_at: str | None = None


class SubmissionRequest(BaseModel):
    student_id: str = ""
    student_name: str = ""
    # Shape is checked by the grading engine, which collects every violation.
    answers: Any = Field(default_factory=list)
    time_spent_seconds: Any = 0
    password: str | None = None


class AnswerResult(BaseModel):
    question_id: int
    question: str
    student_answer: str
    correct_answer: str
    is_correct: bool
    points_awarded: int
    max_points: int


class SubmissionResult(BaseModel):
    submission_id: str
    quiz_id: str
    student_id: str
    student_name: str
    total_score: int
    max_score: int
    percentage: float
    correct_answers: int
    total_questions: int
    grade: str
    time_spent_seconds: int
    submitted_at: str | None
    show_results: bool
    answers: list[AnswerResult] | None = None


class SubmissionResponse(BaseModel):
    message: str
    submission: SubmissionResult
    warnings: list[str] = Field(default_factory=list)
