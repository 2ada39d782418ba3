# quiz-sessions/schemas/sessions.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Requests ----------


class UpdateSessionRequest(CamelModel):
    session_token: str
    answers: Optional[Dict[str, Union[str, int, None]]] = None
    locked_questions: Optional[List[int]] = None
    current_question: Optional[int] = None


class CompleteSessionRequest(CamelModel):
    session_token: str
    # omitted -> the answers last saved on the session are graded
    answers: Optional[Dict[str, Union[str, int, None]]] = None


# ---------- Display form ----------


class DisplayOption(BaseModel):
    text: str
    value: str
    index: int


class DisplayQuestion(CamelModel):
    id: str
    original_index: int
    display_index: int
    question: str
    type: str
    options: List[DisplayOption]
    time_limit: int
    points: int


class QuizDisplay(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    time_limit: int
    total_points: int
    passing_score: int
    attempts: int
    questions: List[DisplayQuestion]


# ---------- Responses ----------


class SessionState(CamelModel):
    session_token: str
    answers: Dict[str, str]
    locked_questions: List[int]
    current_question: int
    started_at: datetime
    expires_at: datetime
    time_remaining: int


class StartSessionResponse(CamelModel):
    ok: bool = True
    resumed: bool
    message: str
    session: SessionState
    quiz: QuizDisplay


class UpdateSessionResponse(CamelModel):
    ok: bool = True
    message: str = "Session updated successfully"
    time_remaining: int


class ResultSummary(CamelModel):
    score: int
    percentage: int
    correct_answers: int
    total_questions: int
    is_passed: bool
    passing_score: Optional[int] = None


class CompleteSessionResponse(CamelModel):
    ok: bool = True
    message: str = "Quiz submitted successfully"
    result: ResultSummary


class AttemptStatus(CamelModel):
    quiz_id: int
    attempts_allowed: int
    attempts_used: int
    allow_retake: bool
    eligible: bool
    code: Optional[str] = None
    message: Optional[str] = None
    retake_available_at: Optional[datetime] = None
    cooldown_hours: Optional[int] = None
    remaining_hours: Optional[int] = None
    has_active_session: bool
    last_result: Optional[ResultSummary] = None
