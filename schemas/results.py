from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)
    id: int
    student_id: int
    quiz_id: int
    course_id: int
    score: int
    percentage: int
    total_questions: int
    correct_answers: int
    total_points: int
    time_spent: int
    is_passed: bool
    attempt_number: int
    started_at: datetime
    completed_at: datetime
    # graded per-question rows; usually excluded in list views
    answers: list[dict[str, Any]] | None = None
