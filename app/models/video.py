"""Uploaded lesson video. Media lives in object storage; only signed URLs are ever handed out."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from app.database import Base
from app.utils.clock import utcnow


class VideoCategory(str, enum.Enum):
    ARABIC = "ARABIC"
    ENGLISH = "ENGLISH"
    BIOLOGY = "BIOLOGY"
    CHEMISTRY = "CHEMISTRY"
    MATH = "MATH"


class Video(Base):
    __tablename__ = "videos"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, index=True)
    # Object path as stored; older rows may hold a full public URL or a "videos/" prefixed path
    video_path = Column(String(1024), nullable=False)
    thumbnail_path = Column(String(1024), nullable=True)
    content_type = Column(String(100), nullable=True)  # video/mp4 etc
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
