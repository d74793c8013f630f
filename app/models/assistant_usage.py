"""Study assistant questions asked per user per UTC day."""
import uuid
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, UniqueConstraint
from app.database import Base
from app.utils.clock import utcnow


class AssistantUsage(Base):
    __tablename__ = "assistant_usage"
    __table_args__ = (UniqueConstraint("user_id", "usage_date", name="uq_assistant_usage_user_date"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    usage_date = Column(Date, nullable=False)
    question_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
