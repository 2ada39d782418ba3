from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from bank import (
    QuestionModel,
    correct_index,
    legacy_question_key,
    parse_answer_index,
    parse_questions,
    question_key,
)
from errors import NotFoundError
from models import QuizResult, QuizSession
from ordering import apply_question_order

logger = logging.getLogger("quiz-sessions.grading")


# --- Low-level helpers ------------------------------------------------------------


def _lookup_answer(answers: Mapping[str, Any], qid: str, original_index: int) -> Optional[str]:
    """
    Answers are keyed by question id; sessions saved by older clients used the
    positional key q_<originalIndex>. The first non-empty value wins.
    """
    for key in (qid, legacy_question_key(original_index)):
        value = answers.get(key)
        if value is not None and str(value) != "":
            return str(value)
    return None


def _is_correct(question: QuestionModel, answer: Optional[str]) -> bool:
    if answer is None:
        return False
    chosen = parse_answer_index(answer)
    if chosen is None:
        return False
    # true/false and option questions alike compare option indices;
    # correct_index() already resolved text and boolean storage forms
    expected = correct_index(question)
    return expected is not None and chosen == expected


def percentage_of(score: int, total: int) -> int:
    if total <= 0:
        return 0
    # half-up, so 78.5 -> 79 rather than Python's round-half-even
    return int(math.floor(100 * score / total + 0.5))


# --- Core grading -----------------------------------------------------------------


def grade_answers(
    questions: List[QuestionModel],
    order: Optional[List[Dict[str, Any]]],
    answers: Mapping[str, Any] | None,
    passing_score: int,
) -> Dict[str, Any]:
    answers = answers or {}
    score = 0
    correct_count = 0
    graded: List[Dict[str, Any]] = []

    for original_index, q in apply_question_order(questions, order):
        qid = question_key(q, original_index)
        answer = _lookup_answer(answers, qid, original_index)
        ok = _is_correct(q, answer)
        if ok:
            correct_count += 1
            score += q.points
        graded.append(
            {
                "questionId": qid,
                "selectedAnswer": answer,
                "isCorrect": ok,
                "pointsAwarded": q.points if ok else 0,
                "timeSpent": 0,
            }
        )

    total = sum(q.points for q in questions)
    percentage = percentage_of(score, total)
    return {
        "score": score,
        "percentage": percentage,
        "correctAnswers": correct_count,
        "totalQuestions": len(questions),
        "totalPoints": total,
        "isPassed": percentage >= passing_score,
        "answers": graded,
    }


class GradingEngine:
    """Grades a finished session against the current quiz and appends its Result."""

    def __init__(self, quizzes, results) -> None:
        self.quizzes = quizzes
        self.results = results

    def grade_session(
        self, session: QuizSession, answers: Mapping[str, Any] | None, now: datetime
    ) -> QuizResult:
        existing = self.results.get_for_session(session.id)
        if existing is not None:
            return existing

        # re-read the quiz so point edits made after the session started are honoured
        quiz = self.quizzes.get(session.quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")

        graded = grade_answers(
            parse_questions(quiz.questions),
            session.question_order,
            answers,
            quiz.passing_score,
        )
        prior = self.results.count_for(session.student_id, session.quiz_id)

        result = QuizResult(
            student_id=session.student_id,
            quiz_id=session.quiz_id,
            course_id=quiz.course_id,
            session_id=session.id,
            answers=graded["answers"],
            score=graded["score"],
            percentage=graded["percentage"],
            total_questions=graded["totalQuestions"],
            correct_answers=graded["correctAnswers"],
            total_points=graded["totalPoints"],
            time_spent=max(0, math.floor((now - session.started_at).total_seconds())),
            is_passed=graded["isPassed"],
            attempt_number=prior + 1,
            started_at=session.started_at,
            completed_at=now,
        )
        self.results.add(result)
        logger.info(
            "graded session %s: %s/%s points (%s%%), attempt %s",
            session.id,
            result.score,
            result.total_points,
            result.percentage,
            result.attempt_number,
        )
        return result
