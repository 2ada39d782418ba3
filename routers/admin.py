from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bank import QuizDefinition, load_quiz_files
from db import get_db
from deps.auth import require_admin
from deps.services import get_session_service
from models import Quiz
from repositories import EnrollmentDirectory, QuizRepository
from schemas.admin import EnrollmentIn
from sessions import QuizSessionService

logger = logging.getLogger("quiz-sessions.admin")

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def apply_definition(
    quizzes: QuizRepository, definition: QuizDefinition, quiz_id: Optional[int]
) -> Quiz:
    """
    Create or replace a quiz. Questions without an id get the next value of the
    quiz's sequence; ids already handed out are never reused, so an explicit id
    that was dropped from the quiz earlier is rejected.
    """
    quiz = quizzes.get(quiz_id) if quiz_id is not None else None
    if quiz is None:
        quiz = Quiz(id=quiz_id, question_seq=0)

    current = {existing.get("id") for existing in quiz.questions or []}
    seen: set[int] = set()
    seq = quiz.question_seq or 0
    for q in definition.questions:
        if q.id is not None:
            if q.id in seen:
                raise HTTPException(status_code=422, detail=f"duplicate question id {q.id}")
            if q.id <= (quiz.question_seq or 0) and q.id not in current:
                raise HTTPException(status_code=422, detail=f"question id {q.id} was retired")
            seq = max(seq, q.id)
            seen.add(q.id)

    # unnumbered questions whose text is unchanged keep their id, so reloading
    # the same file does not orphan open sessions
    known: dict[str, list[int]] = {}
    for existing in quiz.questions or []:
        qid = existing.get("id")
        if qid is not None and qid not in seen:
            known.setdefault(existing.get("question"), []).append(qid)

    stored = []
    for position, q in enumerate(definition.questions):
        if q.id is None:
            reusable = known.get(q.question)
            if reusable:
                q = q.model_copy(update={"id": reusable.pop(0)})
            else:
                seq += 1
                q = q.model_copy(update={"id": seq})
        if q.order is None:
            q = q.model_copy(update={"order": position})
        stored.append(q.model_dump(by_alias=True, mode="json"))

    quiz.course_id = definition.course_id
    quiz.title = definition.title
    quiz.description = definition.description
    quiz.question_seq = seq
    quiz.questions = stored  # recomputes total_points
    quiz.passing_score = definition.passing_score
    quiz.time_limit = definition.time_limit
    quiz.attempts = definition.attempts
    quiz.is_active = definition.is_active
    quiz.randomize_questions = definition.randomize_questions
    quiz.allow_retake = definition.allow_retake
    quiz.retake_cooldown_hours = definition.retake_cooldown_hours
    return quizzes.add(quiz)


def _quiz_out(quiz: Quiz) -> dict:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "totalPoints": quiz.total_points,
        "questionIds": [q.get("id") for q in quiz.questions],
    }


@router.post("/reload")
def reload_quizzes(db: Session = Depends(get_db)):
    quizzes = QuizRepository(db)
    loaded = [apply_definition(quizzes, d, d.id) for d in load_quiz_files()]
    quizzes.commit()
    logger.info("loaded %s quiz definition(s) from files", len(loaded))
    return {"ok": True, "count": len(loaded)}


@router.put("/quizzes/{quiz_id}")
def put_quiz(quiz_id: int, definition: QuizDefinition, db: Session = Depends(get_db)):
    quizzes = QuizRepository(db)
    quiz = apply_definition(quizzes, definition, quiz_id)
    quizzes.commit()
    return {"ok": True, "quiz": _quiz_out(quiz)}


@router.post("/enrollments")
def enroll(body: EnrollmentIn, db: Session = Depends(get_db)):
    directory = EnrollmentDirectory(db)
    e = directory.enroll(body.student_id, body.course_id)
    directory.commit()
    return {"ok": True, "id": e.id, "studentId": e.student_id, "courseId": e.course_id}


@router.post("/sessions/sweep")
def sweep_sessions(service: QuizSessionService = Depends(get_session_service)):
    return {"ok": True, "submitted": service.sweep_expired()}
