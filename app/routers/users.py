from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.banned_user import BannedUser
from app.models.teacher_invite_code import TeacherInviteCode
from app.models.user import User
from app.auth import get_current_user_admin
from app.schemas.ban import BanCreate, BanResponse
from app.schemas.invite import InviteCodeCreated, InviteCodeResponse
from app.schemas.user import UserResponse, UserUpdate
from app.services.bans import ban_user, unban_user
from app.services.invite_codes import create_invite_code, deactivate_invite_code
from app.services.subscriptions import is_premium

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _user_response(db: Session, u: User, banned: bool) -> UserResponse:
    return UserResponse(
        id=u.id,
        email=u.email,
        full_name=u.full_name,
        role=u.role,
        is_premium=is_premium(db, u.id),
        is_banned=banned,
        created_at=u.created_at,
        updated_at=u.updated_at,
    )


# ---------- Bans ----------


@router.get("/bans", response_model=list[BanResponse])
def list_bans(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """List banned users, newest first."""
    rows = (
        db.query(BannedUser, User)
        .join(User, BannedUser.user_id == User.id)
        .order_by(BannedUser.banned_at.desc())
        .all()
    )
    return [
        BanResponse(
            id=ban.id,
            user_id=ban.user_id,
            user_email=u.email,
            user_full_name=u.full_name or u.email,
            reason=ban.reason,
            banned_by=ban.banned_by,
            banned_at=ban.banned_at,
        )
        for ban, u in rows
    ]


@router.post("/bans", response_model=BanResponse, status_code=status.HTTP_201_CREATED)
def create_ban(
    body: BanCreate,
    admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Ban a user. Their existing tokens stop working immediately."""
    if body.user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot ban yourself.")
    u = db.query(User).filter(User.id == body.user_id).first()
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    ban = ban_user(db, u.id, admin.id, (body.reason or "").strip() or None)
    db.commit()
    db.refresh(ban)
    return BanResponse(
        id=ban.id,
        user_id=ban.user_id,
        user_email=u.email,
        user_full_name=u.full_name or u.email,
        reason=ban.reason,
        banned_by=ban.banned_by,
        banned_at=ban.banned_at,
    )


@router.delete("/bans/{user_id}")
def delete_ban(
    user_id: str,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Unban a user."""
    if not unban_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User is not banned")
    db.commit()
    return {"message": "User unbanned successfully."}


# ---------- Users ----------


@router.get("/users", response_model=list[UserResponse])
def get_all_users(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """List all users (admin only)."""
    users = db.query(User).order_by(User.created_at.desc()).all()
    banned = {row.user_id for row in db.query(BannedUser.user_id).all()}
    return [_user_response(db, u, u.id in banned) for u in users]


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    body: UserUpdate,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Update name or role (e.g. promote a student to teacher)."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if body.full_name is not None:
        user.full_name = body.full_name.strip()[:100]
    if body.role is not None:
        user.role = body.role.value
    db.commit()
    db.refresh(user)
    banned = db.query(BannedUser).filter(BannedUser.user_id == user.id).first() is not None
    return _user_response(db, user, banned)


# ---------- Teacher invite codes ----------


@router.get("/invite-codes", response_model=list[InviteCodeResponse])
def list_invite_codes(
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    return db.query(TeacherInviteCode).order_by(TeacherInviteCode.created_at.desc()).all()


@router.post("/invite-codes", response_model=InviteCodeCreated, status_code=status.HTTP_201_CREATED)
def new_invite_code(
    admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Generate a teacher invite code. The plain code is only returned here."""
    row, code = create_invite_code(db, admin.id)
    db.commit()
    db.refresh(row)
    return InviteCodeCreated(id=row.id, code=code)


@router.delete("/invite-codes/{code_id}")
def revoke_invite_code(
    code_id: str,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    if not deactivate_invite_code(db, code_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite code not found")
    db.commit()
    return {"message": "Invite code deactivated."}
