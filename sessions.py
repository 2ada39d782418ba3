from __future__ import annotations

import logging
import math
import random
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from bank import QuestionModel, display_question, parse_questions
from db import utcnow
from eligibility import evaluate_eligibility
from errors import ForbiddenError, MalformedInputError, NotFoundError, SessionExpiredError
from grading import GradingEngine
from models import Quiz, QuizResult, QuizSession
from ordering import Shuffle, apply_question_order, build_question_order

logger = logging.getLogger("quiz-sessions.sessions")

_TOKEN_RE = re.compile(r"^[0-9a-f]{64}$")


def new_session_token() -> str:
    return secrets.token_hex(32)


def time_remaining(session: QuizSession, now: datetime) -> int:
    return max(0, math.floor((session.expires_at - now).total_seconds()))


# --- Input normalisation ----------------------------------------------------------
# Everything here runs before a session row is touched.


def _check_token(token: Any) -> str:
    if not isinstance(token, str) or _TOKEN_RE.fullmatch(token) is None:
        raise MalformedInputError("Invalid session token")
    return token


def _normalize_answers(answers: Any) -> Optional[Dict[str, str]]:
    if answers is None:
        return None
    if not isinstance(answers, Mapping):
        raise MalformedInputError("answers must be an object keyed by question id")
    normalized: Dict[str, str] = {}
    for key, value in answers.items():
        if not isinstance(key, str) or not key:
            raise MalformedInputError("answer keys must be non-empty strings")
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise MalformedInputError(f"answer for {key!r} must be an option index")
        normalized[key] = str(value)
    return normalized


def _normalize_locked(locked: Any) -> Optional[List[int]]:
    if locked is None:
        return None
    if not isinstance(locked, (list, tuple, set)):
        raise MalformedInputError("lockedQuestions must be a list of question indices")
    out = set()
    for idx in locked:
        if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0:
            raise MalformedInputError("lockedQuestions must contain non-negative integers")
        out.add(idx)
    return sorted(out)


def _normalize_position(position: Any) -> Optional[int]:
    if position is None:
        return None
    if isinstance(position, bool) or not isinstance(position, int) or position < 0:
        raise MalformedInputError("currentQuestion must be a non-negative integer")
    return position


# --- Service ----------------------------------------------------------------------


class QuizSessionService:
    """
    Lifecycle of one student's attempt at one quiz.

    ACTIVE -> COMPLETED by explicit completion; ACTIVE -> EXPIRED -> COMPLETED
    when an access finds the deadline passed (lazy expiry, auto-submitted once).
    Nothing leaves COMPLETED.
    """

    def __init__(
        self,
        quizzes,
        sessions,
        results,
        enrollments,
        clock: Callable[[], datetime] = utcnow,
        shuffle: Shuffle = random.shuffle,
        token_factory: Callable[[], str] = new_session_token,
    ) -> None:
        self.quizzes = quizzes
        self.sessions = sessions
        self.results = results
        self.enrollments = enrollments
        self.clock = clock
        self.shuffle = shuffle
        self.token_factory = token_factory
        self.grader = GradingEngine(quizzes, results)

    # ---------- helpers ----------

    def _active_quiz(self, quiz_id: int) -> Quiz:
        quiz = self.quizzes.get(quiz_id)
        if quiz is None or not quiz.is_active:
            raise NotFoundError("Quiz not found or not available")
        return quiz

    def _require_enrollment(self, student_id: int, quiz: Quiz) -> None:
        if not self.enrollments.is_enrolled(student_id, quiz.course_id):
            raise ForbiddenError("You must be enrolled in the course to take this quiz")

    def _summary(self, result: QuizResult) -> Dict[str, Any]:
        quiz = self.quizzes.get(result.quiz_id)
        return {
            "score": result.score,
            "percentage": result.percentage,
            "correctAnswers": result.correct_answers,
            "totalQuestions": result.total_questions,
            "isPassed": result.is_passed,
            "passingScore": quiz.passing_score if quiz is not None else None,
        }

    def _expired(self, session: QuizSession, now: datetime) -> SessionExpiredError:
        result = self.expire(session, now)
        return SessionExpiredError(result=self._summary(result) if result is not None else None)

    @staticmethod
    def _session_state(session: QuizSession, now: datetime) -> Dict[str, Any]:
        return {
            "sessionToken": session.session_token,
            "answers": dict(session.answers or {}),
            "lockedQuestions": list(session.locked_questions or []),
            "currentQuestion": session.current_question,
            "startedAt": session.started_at,
            "expiresAt": session.expires_at,
            "timeRemaining": time_remaining(session, now),
        }

    @staticmethod
    def _display_quiz(
        quiz: Quiz, questions: List[QuestionModel], order: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        ordered = [
            display_question(q, original_index, display_index)
            for display_index, (original_index, q) in enumerate(
                apply_question_order(questions, order)
            )
        ]
        return {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "timeLimit": quiz.time_limit,
            "totalPoints": quiz.total_points,
            "passingScore": quiz.passing_score,
            "attempts": quiz.attempts,
            "questions": ordered,
        }

    # ---------- operations ----------

    def start_or_resume(self, student_id: int, quiz_id: int) -> Dict[str, Any]:
        quiz = self._active_quiz(quiz_id)
        self._require_enrollment(student_id, quiz)
        now = self.clock()

        session = self.sessions.get_open(student_id, quiz_id)
        if session is not None:
            return self._resume(session, quiz, now)

        prior = self.results.list_for(student_id, quiz_id)
        evaluate_eligibility(quiz, prior, now).raise_if_ineligible()

        questions = parse_questions(quiz.questions)
        order = build_question_order(questions, quiz.randomize_questions, self.shuffle)
        session = QuizSession(
            session_token=self.token_factory(),
            student_id=student_id,
            quiz_id=quiz.id,
            answers={},
            locked_questions=[],
            current_question=0,
            question_order=order,
            started_at=now,
            last_activity_at=now,
            expires_at=now + timedelta(minutes=quiz.time_limit),
        )
        try:
            self.sessions.add(session)
        except IntegrityError:
            # another request opened a session for this pair first; resume that one
            self.sessions.rollback()
            existing = self.sessions.get_open(student_id, quiz_id)
            if existing is None:
                raise
            return self._resume(existing, quiz, now)
        self.sessions.commit()

        logger.info(
            "started session %s for student %s on quiz %s (attempt %s)",
            session.id,
            student_id,
            quiz_id,
            len(prior) + 1,
        )
        return {
            "resumed": False,
            "session": self._session_state(session, now),
            "quiz": self._display_quiz(quiz, questions, order),
        }

    def _resume(self, session: QuizSession, quiz: Quiz, now: datetime) -> Dict[str, Any]:
        if now > session.expires_at:
            raise self._expired(session, now)

        session.last_activity_at = now
        self.sessions.commit()
        logger.info("resumed session %s for student %s", session.id, session.student_id)

        # the stored mapping is reused as-is; it is never regenerated on resume
        return {
            "resumed": True,
            "session": self._session_state(session, now),
            "quiz": self._display_quiz(
                quiz, parse_questions(quiz.questions), session.question_order
            ),
        }

    def update_progress(
        self,
        session_token: str,
        student_id: int,
        quiz_id: int,
        answers: Optional[Mapping[str, Any]] = None,
        locked_questions: Optional[List[int]] = None,
        current_question: Optional[int] = None,
    ) -> Dict[str, Any]:
        token = _check_token(session_token)
        answers = _normalize_answers(answers)
        locked_questions = _normalize_locked(locked_questions)
        current_question = _normalize_position(current_question)

        session = self.sessions.get_owned(token, student_id, quiz_id, active_only=True)
        if session is None:
            raise NotFoundError("Quiz session not found or already completed")

        now = self.clock()
        if now > session.expires_at:
            raise self._expired(session, now)

        # last write wins: provided fields replace the stored ones wholesale
        if answers is not None:
            session.answers = answers
        if locked_questions is not None:
            session.locked_questions = locked_questions
        if current_question is not None:
            session.current_question = current_question
        session.last_activity_at = now
        self.sessions.commit()

        return {"timeRemaining": time_remaining(session, now)}

    def complete(
        self,
        session_token: str,
        student_id: int,
        quiz_id: int,
        answers: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        token = _check_token(session_token)
        answers = _normalize_answers(answers)

        session = self.sessions.get_owned(token, student_id, quiz_id, active_only=False)
        if session is None:
            raise NotFoundError("Quiz session not found or already completed")

        now = self.clock()
        if now > session.expires_at:
            # answers sent after the deadline are ignored; the last saved ones are graded
            raise self._expired(session, now)

        final = answers if answers is not None else dict(session.answers or {})
        session.is_completed = True
        session.answers = final
        try:
            result = self.grader.grade_session(session, final, now)
            self.sessions.commit()
        except IntegrityError:
            self.sessions.rollback()
            raise NotFoundError("Quiz session not found or already completed")

        logger.info("completed session %s for student %s", session.id, student_id)
        return self._summary(result)

    def expire(self, session: QuizSession, now: Optional[datetime] = None) -> Optional[QuizResult]:
        """
        Auto-submit a session whose deadline has passed, grading its last saved
        answers. A session that is already completed is left alone and None is
        returned, so detecting expiry again never produces a second Result.
        """
        if session.is_completed:
            return None
        now = now or self.clock()
        session.is_expired = True
        session.is_completed = True
        try:
            result = self.grader.grade_session(session, session.answers, now)
            self.sessions.commit()
        except IntegrityError:
            # a concurrent request graded it first
            self.sessions.rollback()
            return None
        logger.info("auto-submitted expired session %s", session.session_token)
        return result

    def sweep_expired(self) -> int:
        now = self.clock()
        submitted = 0
        for session in self.sessions.list_overdue(now):
            if self.expire(session, now) is not None:
                submitted += 1
        if submitted:
            logger.info("sweep auto-submitted %s expired session(s)", submitted)
        return submitted

    def attempt_status(self, student_id: int, quiz_id: int) -> Dict[str, Any]:
        quiz = self._active_quiz(quiz_id)
        self._require_enrollment(student_id, quiz)
        now = self.clock()

        prior = self.results.list_for(student_id, quiz_id)
        eligibility = evaluate_eligibility(quiz, prior, now)
        open_session = self.sessions.get_open(student_id, quiz_id)
        return {
            "quizId": quiz.id,
            "attemptsAllowed": quiz.attempts,
            "attemptsUsed": eligibility.attempts_used,
            "allowRetake": quiz.allow_retake,
            "eligible": eligibility.eligible,
            "code": eligibility.code,
            "message": eligibility.message,
            "retakeAvailableAt": eligibility.retake_available_at,
            "cooldownHours": eligibility.cooldown_hours,
            "remainingHours": eligibility.remaining_hours,
            "hasActiveSession": open_session is not None and now <= open_session.expires_at,
            "lastResult": self._summary(prior[0]) if prior else None,
        }
