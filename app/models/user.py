import uuid
import enum
from sqlalchemy import Column, String, DateTime
from app.database import Base
from app.utils.clock import utcnow


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=True)
    full_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
