"""
Study assistant quota:
- GET /api/assistant/usage: limit, used and remaining questions today
- POST /api/assistant/usage: reserve one question (429 when the daily limit is reached)
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.assistant import AssistantUsageResponse
from app.services.assistant_quota import daily_limit, questions_used_today, try_consume_question

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["assistant"])


def _usage(limit: int | None, used: int) -> AssistantUsageResponse:
    return AssistantUsageResponse(
        limit=limit,
        used_today=used,
        remaining_today=None if limit is None else max(0, limit - used),
    )


@router.get("/usage", response_model=AssistantUsageResponse)
def get_usage(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _usage(daily_limit(db, user.id), questions_used_today(db, user.id))


@router.post("/usage", response_model=AssistantUsageResponse)
def consume_question(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Call before sending a question to the assistant."""
    try:
        outcome, limit = try_consume_question(db, user.id)
    except Exception as e:
        logger.exception("Assistant quota check failed for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Assistant temporarily unavailable. Please try again later.",
        ) from e
    if not outcome.accepted:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily limit reached ({limit} questions per day). Upgrade to Premium for unlimited questions.",
        )
    return _usage(limit, outcome.count)
