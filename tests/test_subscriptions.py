"""Derived premium status and the checkout/capture endpoints."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from app.database import SessionLocal
from app.models.subscription import Subscription
from app.routers.subscriptions import get_payment_provider
from app.main import app
from app.services.payments import PaymentOrder
from app.services.subscriptions import activate_subscription, active_subscription, add_one_month, is_premium
from app.utils.clock import utcnow


class StubPayments:
    def __init__(self, capture_ok: bool = True):
        self.capture_ok = capture_ok
        self.captured: list[str] = []

    async def create_order(self, amount, currency, return_url):
        return PaymentOrder(order_id="ORDER-1", approve_url=f"https://paypal.test/approve?token=ORDER-1&ret={return_url}")

    async def capture(self, order_id):
        self.captured.append(order_id)
        return self.capture_ok


def test_premium_boundary(db, student, subscribe):
    expires_at = utcnow() + timedelta(days=3)
    subscribe(student, expires_at=expires_at)
    assert is_premium(db, student.id, expires_at - timedelta(days=1))
    assert is_premium(db, student.id, expires_at)
    assert not is_premium(db, student.id, expires_at + timedelta(microseconds=1))


def test_no_subscription_is_not_premium(db, student):
    assert not is_premium(db, student.id)
    assert active_subscription(db, student.id) is None


def test_history_is_kept_and_latest_expiry_wins(db, student, subscribe):
    subscribe(student, expires_at=utcnow() - timedelta(days=40))
    short = subscribe(student, expires_at=utcnow() + timedelta(days=2))
    long = subscribe(student, expires_at=utcnow() + timedelta(days=20))
    assert db.query(Subscription).filter(Subscription.user_id == student.id).count() == 3
    assert active_subscription(db, student.id).id == long.id
    assert short.id != long.id


def test_add_one_month():
    assert add_one_month(datetime(2025, 1, 15, 10, 0)) == datetime(2025, 2, 15, 10, 0)
    assert add_one_month(datetime(2025, 1, 31)) == datetime(2025, 2, 28)
    assert add_one_month(datetime(2024, 1, 31)) == datetime(2024, 2, 29)
    assert add_one_month(datetime(2025, 12, 20)) == datetime(2026, 1, 20)


def test_status_endpoint(client, headers, student, subscribe):
    res = client.get("/api/subscriptions/me", headers=headers(student))
    assert res.status_code == 200
    assert res.json()["is_premium"] is False
    assert res.json()["history"] == []

    subscribe(student)
    body = client.get("/api/subscriptions/me", headers=headers(student)).json()
    assert body["is_premium"] is True
    assert body["expires_at"] is not None
    assert len(body["history"]) == 1


def test_create_order(client, headers, student):
    app.dependency_overrides[get_payment_provider] = lambda: StubPayments()
    res = client.post("/api/subscriptions/orders", json={}, headers=headers(student))
    assert res.status_code == 200
    assert res.json()["order_id"] == "ORDER-1"
    assert res.json()["approve_url"].startswith("https://paypal.test/approve")


def test_capture_success_activates_subscription(db, client, headers, student):
    payments = StubPayments()
    app.dependency_overrides[get_payment_provider] = lambda: payments
    res = client.post("/api/subscriptions/capture", json={"order_id": "ORDER-1"}, headers=headers(student))
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert payments.captured == ["ORDER-1"]
    assert is_premium(db, student.id)

    sub = db.query(Subscription).filter(Subscription.user_id == student.id).one()
    assert sub.payment_reference == "ORDER-1"
    assert sub.expires_at == add_one_month(sub.started_at)


def test_capture_failure_grants_nothing(db, client, headers, student):
    app.dependency_overrides[get_payment_provider] = lambda: StubPayments(capture_ok=False)
    res = client.post("/api/subscriptions/capture", json={"order_id": "ORDER-2"}, headers=headers(student))
    assert res.status_code == 402
    assert db.query(Subscription).count() == 0
    assert not is_premium(db, student.id)


def test_same_order_cannot_be_captured_twice(db, client, headers, student):
    app.dependency_overrides[get_payment_provider] = lambda: StubPayments()
    first = client.post("/api/subscriptions/capture", json={"order_id": "ORDER-3"}, headers=headers(student))
    second = client.post("/api/subscriptions/capture", json={"order_id": "ORDER-3"}, headers=headers(student))
    assert first.status_code == 200
    assert second.status_code == 409
    assert db.query(Subscription).count() == 1


def test_payment_reference_is_unique_in_the_database(db, student):
    now = utcnow()
    db.add(Subscription(user_id=student.id, started_at=now, expires_at=add_one_month(now), payment_reference="ORDER-4"))
    db.commit()
    db.add(Subscription(user_id=student.id, started_at=now, expires_at=add_one_month(now), payment_reference="ORDER-4"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


class RacingPayments(StubPayments):
    """Records the same order from another session while the capture call is in flight."""

    def __init__(self, user_id: str):
        super().__init__()
        self.user_id = user_id

    async def capture(self, order_id):
        with SessionLocal() as other:
            activate_subscription(other, self.user_id, payment_reference=order_id)
            other.commit()
        return await super().capture(order_id)


def test_concurrent_capture_of_same_order_grants_once(db, client, headers, student):
    app.dependency_overrides[get_payment_provider] = lambda: RacingPayments(student.id)
    res = client.post("/api/subscriptions/capture", json={"order_id": "ORDER-5"}, headers=headers(student))
    assert res.status_code == 409
    assert db.query(Subscription).filter(Subscription.payment_reference == "ORDER-5").count() == 1
