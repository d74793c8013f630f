"""
In-app messages between teachers and students.
- Teachers/admins: message one user, or broadcast to everyone.
- Students: a message goes to every teacher (one row per teacher), or to one named teacher.
Callers must db.commit().
"""
import logging
from datetime import datetime

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.models.message import Message
from app.models.user import User, UserRole
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def send_direct(db: Session, sender_id: str, recipient_id: str, title: str, content: str) -> Message:
    message = Message(sender_id=sender_id, recipient_id=recipient_id, title=title, content=content)
    db.add(message)
    return message


def broadcast(db: Session, sender_id: str, title: str, content: str) -> Message:
    message = Message(sender_id=sender_id, recipient_id=None, title=title, content=content, is_broadcast=True)
    db.add(message)
    logger.info("Broadcast message from %s", sender_id)
    return message


def send_to_teachers(db: Session, sender_id: str, title: str, content: str) -> list[Message]:
    """One direct message per teacher. Empty list when there are no teachers."""
    teacher_ids = [
        row.id
        for row in db.query(User.id).filter(User.role == UserRole.TEACHER.value, User.id != sender_id).all()
    ]
    messages = [
        Message(sender_id=sender_id, recipient_id=tid, title=title, content=content)
        for tid in teacher_ids
    ]
    db.add_all(messages)
    return messages


def inbox(db: Session, user_id: str) -> list[Message]:
    """Direct messages to the user plus broadcasts from others, newest first."""
    return (
        db.query(Message)
        .filter(
            or_(
                Message.recipient_id == user_id,
                and_(Message.is_broadcast.is_(True), Message.sender_id != user_id),
            )
        )
        .order_by(Message.created_at.desc())
        .all()
    )


def sent_by(db: Session, user_id: str) -> list[Message]:
    return db.query(Message).filter(Message.sender_id == user_id).order_by(Message.created_at.desc()).all()


def mark_read(db: Session, message_id: str, user_id: str, now: datetime | None = None) -> Message | None:
    """Set read_at on a direct message addressed to user_id. None if there is no such message."""
    message = db.query(Message).filter(Message.id == message_id, Message.recipient_id == user_id).first()
    if message is None:
        return None
    if message.read_at is None:
        message.read_at = now or utcnow()
    return message


def delete_message(db: Session, message_id: str) -> bool:
    deleted = db.query(Message).filter(Message.id == message_id).delete()
    if deleted:
        logger.info("Message %s deleted", message_id)
    return bool(deleted)
