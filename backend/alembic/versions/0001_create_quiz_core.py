"""create quiz core

Revision ID: 0001
Revises: 
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


question_type_enum = sa.Enum("multiple_choice", "true_false", name="questiontype")
quiz_difficulty_enum = sa.Enum("easy", "medium", "hard", name="quizdifficulty")


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("description", sa.String(length=5000), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=200), nullable=False, server_default="general"),
        sa.Column("difficulty", quiz_difficulty_enum, nullable=False, server_default="medium"),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("password", sa.String(length=200), nullable=True),
        sa.Column("allow_retakes", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("show_results", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("owner_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stats", sa.JSON(), nullable=True),
        sa.Column("last_submission_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_quizzes_name", "quizzes", ["name"], unique=False)
    op.create_index("ix_quizzes_category", "quizzes", ["category"], unique=False)
    op.create_index("ix_quizzes_is_public", "quizzes", ["is_public"], unique=False)
    op.create_index("ix_quizzes_is_active", "quizzes", ["is_active"], unique=False)
    op.create_index("ix_quizzes_owner_id", "quizzes", ["owner_id"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("type", question_type_enum, nullable=False, server_default="multiple_choice"),
        sa.Column("prompt", sa.String(), nullable=False, server_default=""),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("correct_answer", sa.String(), nullable=False, server_default=""),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("explanation", sa.String(), nullable=False, server_default=""),
        sa.UniqueConstraint("quiz_id", "position", name="uq_question_quiz_position"),
    )
    op.create_index("ix_questions_quiz_id", "questions", ["quiz_id"], unique=False)

    op.create_table(
        "quiz_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("student_id", sa.String(length=100), nullable=False),
        sa.Column("student_name", sa.String(length=200), nullable=False),
        sa.Column("submitted_by", sa.String(length=64), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("letter_grade", sa.String(length=2), nullable=False, server_default="F"),
        sa.Column("exclusive_key", sa.String(length=100), nullable=True),
        # NULL keys never collide, so retake-enabled quizzes are unconstrained.
        sa.UniqueConstraint("quiz_id", "exclusive_key", name="uq_quiz_submission_exclusive"),
    )
    op.create_index("ix_quiz_submissions_quiz_id", "quiz_submissions", ["quiz_id"], unique=False)
    op.create_index("ix_quiz_submissions_student_id", "quiz_submissions", ["student_id"], unique=False)
    op.create_index("ix_quiz_submissions_submitted_by", "quiz_submissions", ["submitted_by"], unique=False)
    op.create_index("ix_quiz_submissions_submitted_at", "quiz_submissions", ["submitted_at"], unique=False)

    op.create_table(
        "submission_answers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("quiz_submissions.id"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("question", sa.String(), nullable=False, server_default=""),
        sa.Column("student_answer", sa.String(), nullable=False, server_default=""),
        sa.Column("correct_answer", sa.String(), nullable=False, server_default=""),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_points", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_submission_answers_submission_id", "submission_answers", ["submission_id"], unique=False)

    op.create_table(
        "quiz_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("recipient_id", sa.String(length=64), nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("message", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_quiz_notifications_recipient_id", "quiz_notifications", ["recipient_id"], unique=False)
    op.create_index("ix_quiz_notifications_quiz_id", "quiz_notifications", ["quiz_id"], unique=False)
    op.create_index("ix_quiz_notifications_event_type", "quiz_notifications", ["event_type"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_quiz_notifications_event_type", table_name="quiz_notifications")
    op.drop_index("ix_quiz_notifications_quiz_id", table_name="quiz_notifications")
    op.drop_index("ix_quiz_notifications_recipient_id", table_name="quiz_notifications")
    op.drop_table("quiz_notifications")

    op.drop_index("ix_submission_answers_submission_id", table_name="submission_answers")
    op.drop_table("submission_answers")

    op.drop_index("ix_quiz_submissions_submitted_at", table_name="quiz_submissions")
    op.drop_index("ix_quiz_submissions_submitted_by", table_name="quiz_submissions")
    op.drop_index("ix_quiz_submissions_student_id", table_name="quiz_submissions")
    op.drop_index("ix_quiz_submissions_quiz_id", table_name="quiz_submissions")
    op.drop_table("quiz_submissions")

    op.drop_index("ix_questions_quiz_id", table_name="questions")
    op.drop_table("questions")

    op.drop_index("ix_quizzes_owner_id", table_name="quizzes")
    op.drop_index("ix_quizzes_is_active", table_name="quizzes")
    op.drop_index("ix_quizzes_is_public", table_name="quizzes")
    op.drop_index("ix_quizzes_category", table_name="quizzes")
    op.drop_index("ix_quizzes_name", table_name="quizzes")
    op.drop_table("quizzes")

    op.execute("DROP TYPE IF EXISTS questiontype")
    op.execute("DROP TYPE IF EXISTS quizdifficulty")
