import json

from sqlalchemy import func, select

import bank
from conftest import STUDENT, student_headers
from models import Quiz

ADMIN = {"x-admin-token": "admin-secret"}


def _definition(questions):
    return {
        "courseId": 3,
        "title": "Safety basics",
        "passingScore": 60,
        "timeLimit": 15,
        "attempts": 2,
        "questions": questions,
    }


def test_admin_requires_token(client):
    r = client.post("/admin/reload")
    assert r.status_code == 401
    r = client.post("/admin/reload", headers={"x-admin-token": "wrong"})
    assert r.status_code == 401


def test_put_quiz_assigns_ids_and_total_points(client):
    questions = [
        {"question": "a", "options": ["x", "y"], "correctAnswer": 0, "points": 4},
        {"question": "b", "type": "true-false", "correctAnswer": 1, "points": 6},
    ]
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(questions))
    assert r.status_code == 200
    quiz = r.json()["quiz"]
    assert quiz["id"] == 10
    assert quiz["totalPoints"] == 10
    assert quiz["questionIds"] == [1, 2]


def test_question_ids_are_never_reused(client):
    two = [{"question": "a"}, {"question": "b"}]
    client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(two))

    # drop question 2, keep 1, add a new one: it must not get id 2 back
    edited = [{"id": 1, "question": "a"}, {"question": "c", "points": 3}]
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(edited))
    assert r.json()["quiz"]["questionIds"] == [1, 3]
    assert r.json()["quiz"]["totalPoints"] == 4


def test_duplicate_question_ids_rejected(client):
    dup = [{"id": 4, "question": "a"}, {"id": 4, "question": "b"}]
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(dup))
    assert r.status_code == 422


def test_invalid_definition_rejected(client):
    bad = _definition([])
    bad["retakeCooldownHours"] = 9000
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=bad)
    assert r.status_code == 422


def test_enroll_then_start(client):
    client.put("/admin/quizzes/10", headers=ADMIN, json=_definition([{"question": "a"}]))
    body = {"studentId": STUDENT, "courseId": 3}
    r = client.post("/admin/enrollments", headers=ADMIN, json=body)
    assert r.status_code == 200 and r.json()["ok"] is True
    # enrolling twice is harmless
    again = client.post("/admin/enrollments", headers=ADMIN, json=body)
    assert again.json()["id"] == r.json()["id"]

    r = client.post("/quizzes/10/session/start", headers=student_headers())
    assert r.status_code == 201
    assert r.json()["quiz"]["timeLimit"] == 15


def test_reload_from_files(client, tmp_path, monkeypatch):
    (tmp_path / "quizzes.json").write_text(
        json.dumps([dict(_definition([{"question": "a"}]), id=21), dict(_definition([]), id=22)]),
        encoding="utf-8",
    )
    monkeypatch.setattr(bank, "DATA_DIR", tmp_path)

    r = client.post("/admin/reload", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "count": 2}

    # reloading the same files updates in place
    r = client.post("/admin/reload", headers=ADMIN)
    assert r.json()["count"] == 2


def test_sweep_endpoint(client, make_quiz, enroll, clock):
    quiz = make_quiz(time_limit=30)
    enroll()
    client.post(f"/quizzes/{quiz.id}/session/start", headers=student_headers())

    clock.advance(hours=1)
    r = client.post("/admin/sessions/sweep", headers=ADMIN)
    assert r.json() == {"ok": True, "submitted": 1}
    r = client.get("/results/mine", headers=student_headers())
    assert r.json()["count"] == 1


def test_reload_skips_quizzes_without_id(client, db, tmp_path, monkeypatch):
    (tmp_path / "untracked.json").write_text(
        json.dumps(dict(_definition([{"question": "a"}]), title="No id")),
        encoding="utf-8",
    )
    (tmp_path / "tracked.json").write_text(
        json.dumps(dict(_definition([{"question": "a"}]), id=30)),
        encoding="utf-8",
    )
    monkeypatch.setattr(bank, "DATA_DIR", tmp_path)

    for _ in range(3):
        r = client.post("/admin/reload", headers=ADMIN)
        assert r.json() == {"ok": True, "count": 1}

    assert db.scalar(select(func.count()).select_from(Quiz)) == 1


def test_retired_question_id_rejected(client):
    two = [{"question": "a"}, {"question": "b"}]
    client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(two))
    client.put("/admin/quizzes/10", headers=ADMIN, json=_definition([{"id": 1, "question": "a"}]))

    # id 2 was handed out and then dropped; it cannot come back with new content
    revived = [{"id": 1, "question": "a"}, {"id": 2, "question": "something else"}]
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(revived))
    assert r.status_code == 422

    # ids above the sequence are still accepted
    ahead = [{"id": 1, "question": "a"}, {"id": 7, "question": "c"}]
    r = client.put("/admin/quizzes/10", headers=ADMIN, json=_definition(ahead))
    assert r.status_code == 200
    assert r.json()["quiz"]["questionIds"] == [1, 7]
