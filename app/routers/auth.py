from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole
from app.auth import create_access_token, get_current_user, hash_password, verify_password, BANNED_MESSAGE
from app.schemas.invite import InviteCodeValidateRequest, InviteCodeValidateResponse
from app.schemas.user import UserResponse, RegisterRequest, LoginRequest, TokenResponse, SetPasswordRequest
from app.services.bans import is_user_banned
from app.services.invite_codes import is_valid_invite_code
from app.services.subscriptions import is_premium

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create a student account, or a teacher account with a valid invite code. Admins are never self-registered."""
    email = body.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email")
    if body.role == UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin accounts cannot be registered.")
    if body.role == UserRole.TEACHER and not is_valid_invite_code(db, (body.invite_code or "").strip()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid invite code for teacher registration",
        )
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    user = User(
        email=email,
        password=hash_password(body.password),
        full_name=body.full_name.strip()[:100],
        role=body.role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return TokenResponse(access_token=create_access_token(user.id, user.email))


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password. Banned accounts are refused."""
    email = body.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not verify_password(body.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if is_user_banned(db, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=BANNED_MESSAGE)
    token = create_access_token(user.id, user.email)
    return TokenResponse(access_token=token)


@router.put("/me/password")
def set_password(
    body: SetPasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Set or change password."""
    if len(body.new_password) < 6:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password must be at least 6 characters")
    user.password = hash_password(body.new_password)
    db.commit()
    return {"message": "Password updated successfully"}


@router.get("/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        is_premium=is_premium(db, user.id),
        is_banned=False,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.post("/validate-invite", response_model=InviteCodeValidateResponse)
def validate_invite(body: InviteCodeValidateRequest, db: Session = Depends(get_db)):
    """Check a teacher invite code before showing the teacher sign-up form."""
    return InviteCodeValidateResponse(valid=is_valid_invite_code(db, body.invite_code.strip()))
