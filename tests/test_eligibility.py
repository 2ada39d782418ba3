from datetime import UTC, datetime, timedelta

import pytest

from eligibility import ALREADY_PASSED, ATTEMPT_LIMIT, COOLDOWN, evaluate_eligibility
from errors import IneligibleError
from models import Quiz, QuizResult

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _quiz(**kw) -> Quiz:
    fields = {"attempts": 1, "allow_retake": False, "retake_cooldown_hours": 24}
    fields.update(kw)
    return Quiz(**fields)


def _result(hours_ago: float, passed: bool = False) -> QuizResult:
    return QuizResult(is_passed=passed, completed_at=NOW - timedelta(hours=hours_ago))


def test_first_attempt_is_allowed():
    e = evaluate_eligibility(_quiz(), [], NOW)
    assert e.eligible
    assert e.attempt_number == 1


def test_attempt_limit_without_retakes():
    e = evaluate_eligibility(_quiz(attempts=1), [_result(100)], NOW)
    assert not e.eligible
    assert e.code == ATTEMPT_LIMIT
    with pytest.raises(IneligibleError) as exc:
        e.raise_if_ineligible()
    assert exc.value.code == ATTEMPT_LIMIT


def test_under_attempt_limit_without_retakes():
    e = evaluate_eligibility(_quiz(attempts=3), [_result(1), _result(2)], NOW)
    assert e.eligible
    assert e.attempt_number == 3


def test_passed_attempt_blocks_retake():
    e = evaluate_eligibility(_quiz(allow_retake=True), [_result(200, passed=True)], NOW)
    assert not e.eligible
    assert e.code == ALREADY_PASSED


def test_cooldown_23_hours_after_failure():
    e = evaluate_eligibility(_quiz(allow_retake=True), [_result(23)], NOW)
    assert not e.eligible
    assert e.code == COOLDOWN
    assert e.remaining_hours == 1
    assert e.retake_available_at == NOW + timedelta(hours=1)
    assert e.cooldown_hours == 24


def test_cooldown_remaining_hours_round_up():
    e = evaluate_eligibility(_quiz(allow_retake=True), [_result(0.5)], NOW)
    assert e.remaining_hours == 24


def test_cooldown_elapsed_25_hours_after_failure():
    e = evaluate_eligibility(_quiz(allow_retake=True), [_result(25)], NOW)
    assert e.eligible


def test_only_the_latest_result_counts_for_retakes():
    # an old pass followed by a recent failure still only looks at the failure
    prior = [_result(30), _result(100, passed=True)]
    e = evaluate_eligibility(_quiz(allow_retake=True, attempts=1), prior, NOW)
    assert e.eligible
    assert e.attempts_used == 2
