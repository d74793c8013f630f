import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from app.database import Base
from app.utils.clock import utcnow


class Message(Base):
    """Direct message (recipient_id set) or broadcast (recipient_id NULL, is_broadcast True)."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    is_broadcast = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
