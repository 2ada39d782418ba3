"""quiz session schema

Revision ID: base_0001
Revises:
Create Date: 2026-10-19 09:12:41.518203

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "base_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("passing_score", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("time_limit", sa.Integer(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("randomize_questions", sa.Boolean(), nullable=False),
        sa.Column("allow_retake", sa.Boolean(), nullable=False),
        sa.Column("retake_cooldown_hours", sa.Integer(), nullable=False),
        sa.Column("question_seq", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_quizzes_course_id", "quizzes", ["course_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_id"),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])

    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_token", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("quiz_id", sa.Integer(), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("locked_questions", sa.JSON(), nullable=False),
        sa.Column("current_question", sa.Integer(), nullable=False),
        sa.Column("question_order", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("is_expired", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("session_token", name="uq_quiz_sessions_session_token"),
    )
    op.create_index("ix_quiz_sessions_student_id", "quiz_sessions", ["student_id"])
    op.create_index("ix_quiz_sessions_quiz_id", "quiz_sessions", ["quiz_id"])
    # at most one open session per (student, quiz)
    op.create_index(
        "uq_quiz_sessions_open_student_quiz",
        "quiz_sessions",
        ["student_id", "quiz_id"],
        unique=True,
        sqlite_where=sa.text("is_completed = 0"),
        postgresql_where=sa.text("is_completed = false"),
    )

    op.create_table(
        "quiz_results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("quiz_id", sa.Integer(), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("quiz_sessions.id"), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("correct_answers", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=False),
        sa.Column("is_passed", sa.Boolean(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("session_id", name="uq_quiz_results_session_id"),
    )
    op.create_index("ix_quiz_results_student_quiz", "quiz_results", ["student_id", "quiz_id"])


def downgrade() -> None:
    op.drop_index("ix_quiz_results_student_quiz", table_name="quiz_results")
    op.drop_table("quiz_results")
    op.drop_index("uq_quiz_sessions_open_student_quiz", table_name="quiz_sessions")
    op.drop_index("ix_quiz_sessions_quiz_id", table_name="quiz_sessions")
    op.drop_index("ix_quiz_sessions_student_id", table_name="quiz_sessions")
    op.drop_table("quiz_sessions")
    op.drop_index("ix_enrollments_student_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_quizzes_course_id", table_name="quizzes")
    op.drop_table("quizzes")
