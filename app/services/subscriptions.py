"""
Premium status is derived from subscription history, never stored as a flag:
a user is premium at T iff some subscription row is active and expires_at >= T.
"""
import calendar
from datetime import datetime

from sqlalchemy import exists
from sqlalchemy.orm import Session

from app.models.subscription import Subscription
from app.utils.clock import utcnow


def is_premium(db: Session, user_id: str, at: datetime | None = None) -> bool:
    at = at or utcnow()
    return db.query(
        exists().where(
            Subscription.user_id == user_id,
            Subscription.is_active.is_(True),
            Subscription.expires_at >= at,
        )
    ).scalar()


def active_subscription(db: Session, user_id: str, at: datetime | None = None) -> Subscription | None:
    """The currently valid subscription that runs the longest, or None."""
    at = at or utcnow()
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.is_active.is_(True),
            Subscription.expires_at >= at,
        )
        .order_by(Subscription.expires_at.desc())
        .first()
    )


def subscription_history(db: Session, user_id: str) -> list[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .all()
    )


def add_one_month(dt: datetime) -> datetime:
    """Same day next month, clamped to the last day (Jan 31 -> Feb 28/29)."""
    year = dt.year + (1 if dt.month == 12 else 0)
    month = 1 if dt.month == 12 else dt.month + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def activate_subscription(
    db: Session,
    user_id: str,
    now: datetime | None = None,
    payment_reference: str | None = None,
) -> Subscription:
    """Append a one-month subscription starting now. Caller must db.commit()."""
    now = now or utcnow()
    sub = Subscription(
        user_id=user_id,
        is_active=True,
        started_at=now,
        expires_at=add_one_month(now),
        payment_reference=payment_reference,
    )
    db.add(sub)
    return sub
