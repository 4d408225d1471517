import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.quiz import utcnow


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True)

    student_id: Mapped[str] = mapped_column(String(100), index=True)
    student_name: Mapped[str] = mapped_column(String(200))
    submitted_by: Mapped[str] = mapped_column(String(64), index=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0)

    total_score: Mapped[int] = mapped_column(Integer, default=0)
    max_score: Mapped[int] = mapped_column(Integer, default=0)
    percentage: Mapped[float] = mapped_column(Float, default=0.0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    letter_grade: Mapped[str] = mapped_column(String(2), default="F")

    # Set to student_id when the quiz disallows retakes, NULL otherwise.
    exclusive_key: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (UniqueConstraint("quiz_id", "exclusive_key", name="uq_quiz_submission_exclusive"),)


class SubmissionAnswer(Base):
    __tablename__ = "submission_answers"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("quiz_submissions.id"), index=True)

    position: Mapped[int] = mapped_column(Integer)
    question: Mapped[str] = mapped_column(String, default="")
    student_answer: Mapped[str] = mapped_column(String, default="")
    correct_answer: Mapped[str] = mapped_column(String, default="")
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    points_awarded: Mapped[int] = mapped_column(Integer, default=0)
    max_points: Mapped[int] = mapped_column(Integer, default=0)
