from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from app.database import SessionLocal
from app.services.assistant_quota import (
    ASSISTANT_DAILY_FREE_QUESTIONS,
    questions_used_today,
    try_consume_question,
)
from app.utils.clock import utcnow


def test_free_user_daily_limit(client, headers, student):
    for i in range(1, ASSISTANT_DAILY_FREE_QUESTIONS + 1):
        res = client.post("/api/assistant/usage", headers=headers(student))
        assert res.status_code == 200
        assert res.json()["used_today"] == i
        assert res.json()["remaining_today"] == ASSISTANT_DAILY_FREE_QUESTIONS - i

    res = client.post("/api/assistant/usage", headers=headers(student))
    assert res.status_code == 429
    assert "10 questions per day" in res.json()["detail"]

    usage = client.get("/api/assistant/usage", headers=headers(student)).json()
    assert usage == {"limit": 10, "used_today": 10, "remaining_today": 0}


def test_premium_user_unlimited(client, headers, student, subscribe):
    subscribe(student)
    for _ in range(ASSISTANT_DAILY_FREE_QUESTIONS + 5):
        assert client.post("/api/assistant/usage", headers=headers(student)).status_code == 200
    usage = client.get("/api/assistant/usage", headers=headers(student)).json()
    assert usage == {"limit": None, "used_today": 15, "remaining_today": None}


def test_quota_resets_next_day(db, student):
    today = utcnow()
    for _ in range(ASSISTANT_DAILY_FREE_QUESTIONS):
        assert try_consume_question(db, student.id, today)[0].accepted
    assert not try_consume_question(db, student.id, today)[0].accepted

    tomorrow = today + timedelta(days=1)
    outcome, limit = try_consume_question(db, student.id, tomorrow)
    assert outcome.accepted and outcome.count == 1
    assert limit == ASSISTANT_DAILY_FREE_QUESTIONS
    assert questions_used_today(db, student.id, today) == 10


def test_concurrent_questions_respect_limit(db, student):
    def ask(_):
        with SessionLocal() as session:
            return try_consume_question(session, student.id)[0].accepted

    with ThreadPoolExecutor(max_workers=20) as pool:
        results = list(pool.map(ask, range(30)))
    assert results.count(True) == ASSISTANT_DAILY_FREE_QUESTIONS
    assert questions_used_today(db, student.id) == ASSISTANT_DAILY_FREE_QUESTIONS
