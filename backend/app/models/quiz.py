import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, enum.Enum):
    multiple_choice = "multiple-choice"
    true_false = "true-false"


class QuizDifficulty(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class QuizState(str, enum.Enum):
    active = "active"
    ended = "ended"


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(300), index=True)
    description: Mapped[str] = mapped_column(String(5000), default="")
    category: Mapped[str] = mapped_column(String(200), default="general", index=True)
    difficulty: Mapped[QuizDifficulty] = mapped_column(Enum(QuizDifficulty), default=QuizDifficulty.medium)

    time_limit_minutes: Mapped[int] = mapped_column(Integer, default=60)

    is_public: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    # Shareable classroom code, compared verbatim.
    password: Mapped[str | None] = mapped_column(String(200), nullable=True)

    allow_retakes: Mapped[bool] = mapped_column(Boolean, default=False)
    show_results: Mapped[bool] = mapped_column(Boolean, default=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    owner_name: Mapped[str] = mapped_column(String(200), default="")

    total_points: Mapped[int] = mapped_column(Integer, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)

    stats: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    last_submission_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def state(self) -> QuizState:
        return QuizState.active if self.is_active else QuizState.ended


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True)

    # 1-based ordinal, exposed as the question id.
    position: Mapped[int] = mapped_column(Integer)

    type: Mapped[QuestionType] = mapped_column(Enum(QuestionType), default=QuestionType.multiple_choice)
    prompt: Mapped[str] = mapped_column(String, default="")
    options: Mapped[list] = mapped_column(JSON, default=list)
    correct_answer: Mapped[str] = mapped_column(String, default="")
    points: Mapped[int] = mapped_column(Integer, default=1)
    explanation: Mapped[str] = mapped_column(String, default="")

    __table_args__ = (UniqueConstraint("quiz_id", "position", name="uq_question_quiz_position"),)
