from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from db import Base, UTCDateTime, utcnow


class Quiz(Base):
    __tablename__ = "quizzes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(Integer, index=True)
    title: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    questions: Mapped[list] = mapped_column(JSON, default=list)
    passing_score: Mapped[int] = mapped_column(Integer, default=70)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    time_limit: Mapped[int] = mapped_column(Integer, default=30)  # minutes
    attempts: Mapped[int] = mapped_column(Integer, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    randomize_questions: Mapped[bool] = mapped_column(Boolean, default=False)
    allow_retake: Mapped[bool] = mapped_column(Boolean, default=False)
    retake_cooldown_hours: Mapped[int] = mapped_column(Integer, default=24)
    # highest question id handed out so far; ids are never reused
    question_seq: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    @validates("questions")
    def _recompute_total_points(self, key: str, questions: list[dict[str, Any]] | None):
        questions = list(questions or [])
        self.total_points = sum(int(q.get("points") or 1) for q in questions)
        return questions


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (sa.UniqueConstraint("student_id", "course_id"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, index=True)
    course_id: Mapped[int] = mapped_column(Integer)
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class QuizSession(Base):
    __tablename__ = "quiz_sessions"
    __table_args__ = (
        # at most one open session per (student, quiz)
        sa.Index(
            "uq_quiz_sessions_open_student_quiz",
            "student_id",
            "quiz_id",
            unique=True,
            sqlite_where=sa.text("is_completed = 0"),
            postgresql_where=sa.text("is_completed = false"),
        ),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_token: Mapped[str] = mapped_column(String(64), unique=True)
    student_id: Mapped[int] = mapped_column(Integer, index=True)
    quiz_id: Mapped[int] = mapped_column(Integer, sa.ForeignKey("quizzes.id"), index=True)
    answers: Mapped[dict] = mapped_column(JSON, default=dict)
    locked_questions: Mapped[list] = mapped_column(JSON, default=list)
    current_question: Mapped[int] = mapped_column(Integer, default=0)
    question_order: Mapped[list] = mapped_column(JSON, default=list)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime)
    last_activity_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    is_expired: Mapped[bool] = mapped_column(Boolean, default=False)


class QuizResult(Base):
    __tablename__ = "quiz_results"
    __table_args__ = (sa.Index("ix_quiz_results_student_quiz", "student_id", "quiz_id"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer)
    quiz_id: Mapped[int] = mapped_column(Integer, sa.ForeignKey("quizzes.id"))
    course_id: Mapped[int] = mapped_column(Integer)
    # one result per session; NULL for results recorded without a session
    session_id: Mapped[int | None] = mapped_column(
        Integer, sa.ForeignKey("quiz_sessions.id"), unique=True, nullable=True
    )
    answers: Mapped[list] = mapped_column(JSON, default=list)  # graded per-question rows
    score: Mapped[int] = mapped_column(Integer)
    percentage: Mapped[int] = mapped_column(Integer)
    total_questions: Mapped[int] = mapped_column(Integer)
    correct_answers: Mapped[int] = mapped_column(Integer)
    total_points: Mapped[int] = mapped_column(Integer)
    time_spent: Mapped[int] = mapped_column(Integer)  # seconds
    is_passed: Mapped[bool] = mapped_column(Boolean)
    attempt_number: Mapped[int] = mapped_column(Integer, default=1)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
