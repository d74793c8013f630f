"""
Daily question limit for the study assistant.
- Non-premium: 10 questions per UTC calendar day
- Premium: unlimited (still counted)
Consumption uses the same atomic capped upsert as video views.
"""
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.assistant_usage import AssistantUsage
from app.repositories.counters import CounterOutcome, conditional_increment
from app.services.subscriptions import is_premium
from app.utils.clock import utcnow

ASSISTANT_DAILY_FREE_QUESTIONS = 10


def daily_limit(db: Session, user_id: str, now: datetime | None = None) -> int | None:
    return None if is_premium(db, user_id, now) else ASSISTANT_DAILY_FREE_QUESTIONS


def questions_used_today(db: Session, user_id: str, now: datetime | None = None) -> int:
    today = (now or utcnow()).date()
    return db.query(AssistantUsage.question_count).filter(
        AssistantUsage.user_id == user_id,
        AssistantUsage.usage_date == today,
    ).scalar() or 0


def try_consume_question(db: Session, user_id: str, now: datetime | None = None) -> tuple[CounterOutcome, int | None]:
    """
    Reserve one question for today. Returns (outcome, limit).
    Commits on success, rolls back when the limit was already reached.
    """
    now = now or utcnow()
    limit = daily_limit(db, user_id, now)
    outcome = conditional_increment(
        db,
        AssistantUsage,
        keys={"user_id": user_id, "usage_date": now.date()},
        counter="question_count",
        limit=limit,
        touch={"updated_at": now},
    )
    if outcome.accepted:
        db.commit()
    else:
        db.rollback()
    return outcome, limit
