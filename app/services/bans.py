"""Account bans (admin moderation). A banned user cannot authenticate or consume views."""
import logging

from sqlalchemy import exists
from sqlalchemy.orm import Session

from app.models.banned_user import BannedUser

logger = logging.getLogger(__name__)


def is_user_banned(db: Session, user_id: str) -> bool:
    return db.query(exists().where(BannedUser.user_id == user_id)).scalar()


def ban_user(db: Session, user_id: str, banned_by: str, reason: str | None = None) -> BannedUser:
    """Ban a user, or update the reason if already banned. Caller must db.commit()."""
    ban = db.query(BannedUser).filter(BannedUser.user_id == user_id).first()
    if ban:
        ban.reason = reason
        return ban
    ban = BannedUser(user_id=user_id, banned_by=banned_by, reason=reason)
    db.add(ban)
    logger.info("User %s banned by %s", user_id, banned_by)
    return ban


def unban_user(db: Session, user_id: str) -> bool:
    """Remove the ban row. Returns False if the user was not banned. Caller must db.commit()."""
    deleted = db.query(BannedUser).filter(BannedUser.user_id == user_id).delete()
    if deleted:
        logger.info("User %s unbanned", user_id)
    return bool(deleted)
