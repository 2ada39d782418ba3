from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional


class QuizSessionError(Exception):
    """Base for failures surfaced to the caller as structured payloads."""

    status_code = 400
    reason = "ERROR"

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": False, "reason": self.reason, "message": self.message}
        for key, value in self.extra.items():
            if value is None:
                continue
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class NotFoundError(QuizSessionError):
    status_code = 404
    reason = "NOT_FOUND"


class ForbiddenError(QuizSessionError):
    status_code = 403
    reason = "NOT_ENROLLED"


class IneligibleError(QuizSessionError):
    status_code = 403
    reason = "INELIGIBLE"

    def __init__(
        self,
        message: str,
        code: str,
        retake_available_at: Optional[datetime] = None,
        cooldown_hours: Optional[int] = None,
        remaining_hours: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            retakeAvailableAt=retake_available_at,
            cooldownHours=cooldown_hours,
            remainingHours=remaining_hours,
        )
        self.code = code
        self.retake_available_at = retake_available_at
        self.cooldown_hours = cooldown_hours
        self.remaining_hours = remaining_hours


class SessionExpiredError(QuizSessionError):
    status_code = 410
    reason = "EXPIRED"

    def __init__(self, result: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            "Quiz session has expired. Your answers have been auto-submitted.",
            expired=True,
            result=result,
        )
        self.result = result


class MalformedInputError(QuizSessionError):
    status_code = 422
    reason = "MALFORMED"
