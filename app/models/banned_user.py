import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from app.database import Base
from app.utils.clock import utcnow


class BannedUser(Base):
    """A row here means the account may not authenticate. Admin removes the row to unban."""
    __tablename__ = "banned_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    reason = Column(Text, nullable=True)
    banned_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    banned_at = Column(DateTime, nullable=False, default=utcnow)
