"""Teacher invite codes: registering as a teacher requires an active code. Only hashes are stored."""
import hashlib
import logging
import secrets

from sqlalchemy.orm import Session

from app.models.teacher_invite_code import TeacherInviteCode

logger = logging.getLogger(__name__)


def hash_invite_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def is_valid_invite_code(db: Session, code: str | None) -> bool:
    if not code:
        return False
    row = db.query(TeacherInviteCode).filter(TeacherInviteCode.code_hash == hash_invite_code(code)).first()
    return row is not None and row.is_active


def create_invite_code(db: Session, created_by: str | None = None) -> tuple[TeacherInviteCode, str]:
    """Generate a new code. Returns (row, plain code); the plain code is not recoverable later. Caller must db.commit()."""
    code = secrets.token_urlsafe(12)
    row = TeacherInviteCode(code_hash=hash_invite_code(code), created_by=created_by)
    db.add(row)
    logger.info("Teacher invite code created by %s", created_by)
    return row, code


def deactivate_invite_code(db: Session, code_id: str) -> bool:
    row = db.query(TeacherInviteCode).filter(TeacherInviteCode.id == code_id).first()
    if row is None:
        return False
    row.is_active = False
    return True
