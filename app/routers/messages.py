"""
Messages:
- GET /api/messages: inbox (direct + broadcasts)
- GET /api/messages/sent
- POST /api/messages: send (teacher/admin: one user or broadcast; student: all teachers or one teacher)
- POST /api/messages/{id}/read
- GET /api/messages/all, DELETE /api/messages/{id}: admin moderation
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.auth import get_current_user, get_current_user_admin
from app.database import get_db
from app.models.message import Message
from app.models.user import User, UserRole
from app.schemas.message import MessageCreate, MessageResponse
from app.services.messages import (
    broadcast,
    delete_message,
    inbox,
    mark_read,
    send_direct,
    send_to_teachers,
    sent_by,
)

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _to_response(db: Session, messages: list[Message]) -> list[MessageResponse]:
    sender_ids = {m.sender_id for m in messages}
    names = {}
    if sender_ids:
        names = {
            u.id: u.full_name or u.email
            for u in db.query(User).filter(User.id.in_(sender_ids)).all()
        }
    return [
        MessageResponse(
            id=m.id,
            sender_id=m.sender_id,
            sender_name=names.get(m.sender_id, "Unknown User"),
            recipient_id=m.recipient_id,
            title=m.title,
            content=m.content,
            is_broadcast=m.is_broadcast,
            read_at=m.read_at,
            created_at=m.created_at,
        )
        for m in messages
    ]


@router.get("", response_model=list[MessageResponse])
def get_inbox(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(db, inbox(db, user.id))


@router.get("/sent", response_model=list[MessageResponse])
def get_sent(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(db, sent_by(db, user.id))


@router.get("/all", response_model=list[MessageResponse])
def admin_list_messages(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    items = db.query(Message).order_by(Message.created_at.desc()).all()
    return _to_response(db, items)


@router.post("", response_model=list[MessageResponse], status_code=status.HTTP_201_CREATED)
def send_message(
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Returns the created rows (several when a student writes to all teachers)."""
    title = body.title.strip()
    content = body.content.strip()
    if not title or not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and content are required.")

    recipient = None
    if body.recipient_id:
        recipient = db.query(User).filter(User.id == body.recipient_id).first()
        if not recipient:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
        if recipient.id == user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot message yourself.")

    if user.role == UserRole.STUDENT.value:
        if body.broadcast:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Students cannot broadcast.")
        if body.recipient_id:
            if recipient.role != UserRole.TEACHER.value:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Students can only message teachers.")
            created = [send_direct(db, user.id, recipient.id, title, content)]
        else:
            created = send_to_teachers(db, user.id, title, content)
            if not created:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No teachers found")
    elif body.broadcast:
        created = [broadcast(db, user.id, title, content)]
    elif body.recipient_id:
        created = [send_direct(db, user.id, recipient.id, title, content)]
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Select a recipient or broadcast.")

    db.commit()
    for m in created:
        db.refresh(m)
    return _to_response(db, created)


@router.post("/{message_id}/read", response_model=MessageResponse)
def read_message(
    message_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark a direct message as read. Broadcasts have no per-user read state."""
    message = mark_read(db, message_id, user.id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    db.commit()
    db.refresh(message)
    return _to_response(db, [message])[0]


@router.delete("/{message_id}")
def admin_delete_message(
    message_id: str,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    if not delete_message(db, message_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    db.commit()
    return {"message": "Message deleted successfully."}
