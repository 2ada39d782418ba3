import random
from collections.abc import Callable
from datetime import datetime

from fastapi import Depends
from sqlalchemy.orm import Session

from db import get_db, utcnow
from ordering import Shuffle
from repositories import EnrollmentDirectory, QuizRepository, ResultRepository, SessionRepository
from sessions import QuizSessionService


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_shuffle() -> Shuffle:
    return random.shuffle


def get_session_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    shuffle: Shuffle = Depends(get_shuffle),
) -> QuizSessionService:
    return QuizSessionService(
        quizzes=QuizRepository(db),
        sessions=SessionRepository(db),
        results=ResultRepository(db),
        enrollments=EnrollmentDirectory(db),
        clock=clock,
        shuffle=shuffle,
    )
