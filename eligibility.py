from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from errors import IneligibleError
from models import Quiz, QuizResult

ATTEMPT_LIMIT = "ATTEMPT_LIMIT"
ALREADY_PASSED = "ALREADY_PASSED"
COOLDOWN = "COOLDOWN"

_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    attempts_used: int
    code: Optional[str] = None
    message: Optional[str] = None
    retake_available_at: Optional[datetime] = None
    cooldown_hours: Optional[int] = None
    remaining_hours: Optional[int] = None

    @property
    def attempt_number(self) -> int:
        return self.attempts_used + 1

    def raise_if_ineligible(self) -> None:
        if not self.eligible:
            raise IneligibleError(
                self.message or "Not eligible to start this quiz",
                code=self.code or ATTEMPT_LIMIT,
                retake_available_at=self.retake_available_at,
                cooldown_hours=self.cooldown_hours,
                remaining_hours=self.remaining_hours,
            )


def evaluate_eligibility(
    quiz: Quiz, prior_results: Sequence[QuizResult], now: datetime
) -> Eligibility:
    """
    Decide whether a new attempt may begin. `prior_results` must be ordered most
    recent first; only Results count as attempts, abandoned sessions do not.
    """
    used = len(prior_results)

    if not quiz.allow_retake:
        if used >= quiz.attempts:
            return Eligibility(
                eligible=False,
                attempts_used=used,
                code=ATTEMPT_LIMIT,
                message="You have exceeded the maximum number of attempts for this quiz",
            )
        return Eligibility(eligible=True, attempts_used=used)

    if not prior_results:
        return Eligibility(eligible=True, attempts_used=0)

    last = prior_results[0]
    if last.is_passed:
        return Eligibility(
            eligible=False,
            attempts_used=used,
            code=ALREADY_PASSED,
            message=(
                "You have already passed this quiz. "
                "Retakes are only allowed for failed attempts."
            ),
        )

    cooldown = timedelta(hours=quiz.retake_cooldown_hours)
    remaining = cooldown - (now - last.completed_at)
    if remaining > timedelta(0):
        hours = math.ceil(remaining / _HOUR)
        return Eligibility(
            eligible=False,
            attempts_used=used,
            code=COOLDOWN,
            message=f"You must wait {hours} more hour(s) before you can retake this quiz",
            retake_available_at=last.completed_at + cooldown,
            cooldown_hours=quiz.retake_cooldown_hours,
            remaining_hours=hours,
        )
    return Eligibility(eligible=True, attempts_used=used)
