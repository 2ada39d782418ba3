import os
import tempfile
from datetime import UTC, datetime, timedelta

# Point the app at a throwaway SQLite file before db.py is imported
_TMP_DIR = tempfile.mkdtemp(prefix="quiz-sessions-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("ADMIN_TOKEN", "admin-secret")
os.environ.setdefault("QUIZ_API_KEY", "client-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from db import Base, SessionLocal, engine  # noqa: E402
from deps.services import get_clock, get_shuffle  # noqa: E402
from main import app  # noqa: E402
from models import Quiz, QuizResult  # noqa: E402
from repositories import (  # noqa: E402
    EnrollmentDirectory,
    QuizRepository,
    ResultRepository,
    SessionRepository,
)
from sessions import QuizSessionService  # noqa: E402

STUDENT = 41
OTHER_STUDENT = 42
COURSE = 7


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sample_questions():
    return [
        {
            "id": 1,
            "type": "multiple-choice",
            "question": "What is 2 + 2?",
            "options": ["3", "4", "5"],
            "correctAnswer": 1,
            "points": 10,
            "order": 0,
        },
        {
            "id": 2,
            "type": "true-false",
            "question": "The sky is green.",
            "options": [],
            "correctAnswer": 1,
            "points": 5,
            "order": 1,
        },
        {
            "id": 3,
            "type": "dropdown",
            "question": "Capital of France?",
            "options": ["Berlin", "Paris", "Rome"],
            "correctAnswer": "Paris",
            "points": 8,
            "order": 2,
        },
    ]


def reverse_shuffle(items) -> None:
    items.reverse()


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    with SessionLocal() as s:
        yield s


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture
def make_quiz(db):
    def _make(questions=None, **overrides) -> Quiz:
        fields = {
            "course_id": COURSE,
            "title": "Unit 1 check",
            "description": "Warm-up quiz",
            "passing_score": 70,
            "time_limit": 30,
            "attempts": 1,
        }
        fields.update(overrides)
        quiz = Quiz(questions=sample_questions() if questions is None else questions, **fields)
        db.add(quiz)
        db.commit()
        return quiz

    return _make


@pytest.fixture
def enroll(db):
    def _enroll(student_id=STUDENT, course_id=COURSE) -> None:
        EnrollmentDirectory(db).enroll(student_id, course_id)
        db.commit()

    return _enroll


@pytest.fixture
def add_result(db):
    def _add(quiz: Quiz, completed_at: datetime, is_passed=False, student_id=STUDENT) -> QuizResult:
        r = QuizResult(
            student_id=student_id,
            quiz_id=quiz.id,
            course_id=quiz.course_id,
            answers=[],
            score=0,
            percentage=0,
            total_questions=len(quiz.questions),
            correct_answers=0,
            total_points=quiz.total_points,
            time_spent=60,
            is_passed=is_passed,
            attempt_number=1,
            started_at=completed_at - timedelta(minutes=1),
            completed_at=completed_at,
        )
        db.add(r)
        db.commit()
        return r

    return _add


@pytest.fixture
def service(db, clock):
    def _build(shuffle=reverse_shuffle, session_repo=None) -> QuizSessionService:
        return QuizSessionService(
            quizzes=QuizRepository(db),
            sessions=session_repo or SessionRepository(db),
            results=ResultRepository(db),
            enrollments=EnrollmentDirectory(db),
            clock=clock,
            shuffle=shuffle,
        )

    return _build


@pytest.fixture
def client(clock):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_shuffle] = lambda: reverse_shuffle
    return TestClient(app)


def student_headers(student_id=STUDENT):
    return {"x-student-id": str(student_id)}
