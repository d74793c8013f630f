"""Premium subscription period. A purchase appends a row; premium status is derived from history."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from app.database import Base
from app.utils.clock import utcnow


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    payment_reference = Column(String(100), nullable=True, unique=True)  # e.g. PayPal order id
    created_at = Column(DateTime, nullable=False, default=utcnow)
