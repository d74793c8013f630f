"""
View entitlement: decides whether a user may watch a video and records the view.

- Premium users: always allowed; the view is still counted (audit only).
- Free users: FREE_VIEW_LIMIT views per (user, video), lifetime, never reset.
- Banned users, unknown videos and store failures are denied (fail closed).

Each call runs in its own session and transaction. Counts are never cached here.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Union

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.video import Video
from app.repositories.video_views import upsert_view_count
from app.services.bans import is_user_banned
from app.services.subscriptions import is_premium
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Views allowed per (user, video) without a subscription
FREE_VIEW_LIMIT = 2


class DenyReason(str, enum.Enum):
    VIEW_LIMIT_REACHED = "VIEW_LIMIT_REACHED"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class AllowResult:
    view_count: int
    limit: int | None = None  # None for premium

    allowed = True


@dataclass(frozen=True)
class DenyResult:
    reason: DenyReason
    current_count: int | None = None
    limit: int | None = None

    allowed = False


ViewDecision = Union[AllowResult, DenyResult]


class EntitlementEvaluator:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        free_view_limit: int = FREE_VIEW_LIMIT,
    ):
        self._session_factory = session_factory
        self.free_view_limit = free_view_limit

    def limit_for(self, db: Session, user_id: str, now: datetime | None = None) -> int | None:
        """Cap that applies to this user right now (None = unlimited). For display only."""
        return None if is_premium(db, user_id, now) else self.free_view_limit

    def try_consume_view(self, user_id: str | None, video_id: str, now: datetime | None = None) -> ViewDecision:
        if not user_id:
            return DenyResult(DenyReason.UNAUTHENTICATED)
        now = now or utcnow()
        try:
            with self._session_factory() as db:
                if is_user_banned(db, user_id):
                    logger.warning("Banned user %s reached view entitlement check", user_id)
                    return DenyResult(DenyReason.UNAUTHENTICATED)
                if db.get(Video, video_id) is None:
                    return DenyResult(DenyReason.NOT_FOUND)

                limit = None if is_premium(db, user_id, now) else self.free_view_limit
                outcome = upsert_view_count(db, user_id, video_id, limit, now)
                if not outcome.accepted:
                    db.rollback()
                    return DenyResult(DenyReason.VIEW_LIMIT_REACHED, current_count=outcome.count, limit=limit)
                db.commit()
        except Exception:
            logger.exception("View entitlement check failed (user=%s video=%s)", user_id, video_id)
            return DenyResult(DenyReason.INTERNAL_ERROR)

        logger.debug("View %s recorded for user=%s video=%s", outcome.status.value, user_id, video_id)
        return AllowResult(view_count=outcome.count, limit=limit)
