# quiz-sessions/routers/sessions.py

from fastapi import APIRouter, Depends, Response

from deps.auth import current_student
from deps.services import get_session_service
from schemas.sessions import (
    AttemptStatus,
    CompleteSessionRequest,
    CompleteSessionResponse,
    StartSessionResponse,
    UpdateSessionRequest,
    UpdateSessionResponse,
)
from sessions import QuizSessionService

router = APIRouter(prefix="/quizzes", tags=["sessions"])


@router.post("/{quiz_id}/session/start", response_model=StartSessionResponse)
def start_session(
    quiz_id: int,
    response: Response,
    student_id: int = Depends(current_student),
    service: QuizSessionService = Depends(get_session_service),
):
    out = service.start_or_resume(student_id, quiz_id)
    if out["resumed"]:
        return {**out, "message": "Resumed existing quiz session"}
    response.status_code = 201
    return {**out, "message": "Quiz session started"}


@router.put("/{quiz_id}/session/update", response_model=UpdateSessionResponse)
def update_session(
    quiz_id: int,
    req: UpdateSessionRequest,
    student_id: int = Depends(current_student),
    service: QuizSessionService = Depends(get_session_service),
):
    return service.update_progress(
        req.session_token,
        student_id,
        quiz_id,
        answers=req.answers,
        locked_questions=req.locked_questions,
        current_question=req.current_question,
    )


@router.post("/{quiz_id}/session/complete", response_model=CompleteSessionResponse)
def complete_session(
    quiz_id: int,
    req: CompleteSessionRequest,
    student_id: int = Depends(current_student),
    service: QuizSessionService = Depends(get_session_service),
):
    result = service.complete(req.session_token, student_id, quiz_id, answers=req.answers)
    return {"result": result}


@router.get("/{quiz_id}/attempts", response_model=AttemptStatus)
def attempt_status(
    quiz_id: int,
    student_id: int = Depends(current_student),
    service: QuizSessionService = Depends(get_session_service),
):
    return service.attempt_status(student_id, quiz_id)
