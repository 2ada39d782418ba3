from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Enrollment, Quiz, QuizResult, QuizSession


class _Repository:
    """Repositories built on the same db session share one unit of work."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class QuizRepository(_Repository):
    def get(self, quiz_id: int) -> Optional[Quiz]:
        return self.db.get(Quiz, quiz_id)

    def add(self, quiz: Quiz) -> Quiz:
        self.db.add(quiz)
        self.db.flush()
        return quiz


class SessionRepository(_Repository):
    def get_open(self, student_id: int, quiz_id: int) -> Optional[QuizSession]:
        stmt = select(QuizSession).where(
            QuizSession.student_id == student_id,
            QuizSession.quiz_id == quiz_id,
            QuizSession.is_completed.is_(False),
            QuizSession.is_expired.is_(False),
        )
        return self.db.scalars(stmt).first()

    def get_owned(
        self, token: str, student_id: int, quiz_id: int, *, active_only: bool = True
    ) -> Optional[QuizSession]:
        stmt = select(QuizSession).where(
            QuizSession.session_token == token,
            QuizSession.student_id == student_id,
            QuizSession.quiz_id == quiz_id,
            QuizSession.is_completed.is_(False),
        )
        if active_only:
            stmt = stmt.where(QuizSession.is_expired.is_(False))
        return self.db.scalars(stmt).first()

    def add(self, session: QuizSession) -> QuizSession:
        # flush now so a uniqueness violation surfaces here, not at commit
        self.db.add(session)
        self.db.flush()
        return session

    def list_overdue(self, now: datetime) -> List[QuizSession]:
        stmt = (
            select(QuizSession)
            .where(QuizSession.is_completed.is_(False), QuizSession.expires_at < now)
            .order_by(QuizSession.expires_at)
        )
        return list(self.db.scalars(stmt))


class ResultRepository(_Repository):
    def list_for(self, student_id: int, quiz_id: int) -> List[QuizResult]:
        stmt = (
            select(QuizResult)
            .where(QuizResult.student_id == student_id, QuizResult.quiz_id == quiz_id)
            .order_by(QuizResult.completed_at.desc(), QuizResult.id.desc())
        )
        return list(self.db.scalars(stmt))

    def count_for(self, student_id: int, quiz_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizResult)
            .where(QuizResult.student_id == student_id, QuizResult.quiz_id == quiz_id)
        )
        return self.db.scalar(stmt) or 0

    def get(self, result_id: int) -> Optional[QuizResult]:
        return self.db.get(QuizResult, result_id)

    def get_for_session(self, session_id: int) -> Optional[QuizResult]:
        stmt = select(QuizResult).where(QuizResult.session_id == session_id)
        return self.db.scalars(stmt).first()

    def list_for_student(self, student_id: int) -> List[QuizResult]:
        stmt = (
            select(QuizResult)
            .where(QuizResult.student_id == student_id)
            .order_by(QuizResult.completed_at.desc(), QuizResult.id.desc())
        )
        return list(self.db.scalars(stmt))

    def recent(self, limit: int) -> List[QuizResult]:
        stmt = select(QuizResult).order_by(QuizResult.created_at.desc()).limit(limit)
        return list(self.db.scalars(stmt))

    def add(self, result: QuizResult) -> QuizResult:
        self.db.add(result)
        self.db.flush()
        return result


class EnrollmentDirectory(_Repository):
    def is_enrolled(self, student_id: int, course_id: int) -> bool:
        stmt = select(Enrollment.id).where(
            Enrollment.student_id == student_id, Enrollment.course_id == course_id
        )
        return self.db.scalars(stmt).first() is not None

    def enroll(self, student_id: int, course_id: int) -> Enrollment:
        stmt = select(Enrollment).where(
            Enrollment.student_id == student_id, Enrollment.course_id == course_id
        )
        existing = self.db.scalars(stmt).first()
        if existing is not None:
            return existing
        enrollment = Enrollment(student_id=student_id, course_id=course_id)
        self.db.add(enrollment)
        self.db.flush()
        return enrollment
