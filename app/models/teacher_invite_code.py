import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from app.database import Base
from app.utils.clock import utcnow


class TeacherInviteCode(Base):
    """Only the SHA-256 hex digest of the code is stored; the plain code is shown once on creation."""
    __tablename__ = "teacher_invite_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code_hash = Column(String(64), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
