import logging
from datetime import timedelta
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Body, Request, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core import security
from app.core.config import settings
from app.models.auth import User, UserSession
from app.models.users import UserRole
from app.schemas.auth import (
    Signup,
    Login,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    LogoutRequest,
)
from app.schemas.users import UserResponse
from app.utils.schedule import utcnow, as_utc

logger = logging.getLogger(__name__)

router = APIRouter()

REDIRECTS = {
    UserRole.ADMIN: "/admin",
    UserRole.TEACHER: "/dashboard",
    UserRole.STUDENT: "/dashboard",
}


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user:
        return None

    # Check Lockout
    locked_until = as_utc(user.locked_until)
    if locked_until and locked_until > utcnow():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account locked. Try again after {locked_until.strftime('%H:%M:%S')} UTC",
        )

    if not security.verify_password(password, user.password_hash):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= settings.MAX_FAILED_LOGINS:
            user.locked_until = utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            user.failed_login_attempts = 0
            db.commit()
            logger.warning("Locked account %s after repeated failed logins", user.email)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Account locked due to multiple failed attempts. Try again in {settings.LOCKOUT_MINUTES} minutes.",
            )
        db.commit()
        return None

    # Success: Reset attempts
    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = utcnow()
    db.commit()
    return user


def _set_auth_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=max_age,
    )


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def signup(user_in: Signup, db: Session = Depends(deps.get_db)) -> Any:
    """
    Self-registration. New accounts are always students.
    """
    email = user_in.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    user = User(
        email=email,
        name=security.sanitize_input(user_in.name, max_length=200),
        password_hash=security.get_password_hash(user_in.password),
        role=UserRole.STUDENT,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("New student signed up: %s", user.email)
    return user


@router.post("/login", response_model=LoginResponse)
def login(
    response: Response,
    request: Request,
    credentials: Login,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Exchange email and password for an access/refresh token pair
    """
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    access_token = security.create_access_token(user.id)
    refresh_token = security.create_refresh_token(user.id)

    # Store refresh token in session
    session = UserSession(
        user_id=user.id,
        refresh_token=refresh_token,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
        expires_at=utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(session)
    db.commit()

    _set_auth_cookie(response, "access_token", access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    _set_auth_cookie(response, "refresh_token", refresh_token, settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "role": user.role,
        "redirect_to": REDIRECTS.get(user.role, "/"),
        "name": user.name,
        "email": user.email,
    }


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh_token(
    response: Response,
    request: Request,
    refresh_data: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(deps.get_db)
) -> Any:
    """
    Refresh access token using refresh token
    """
    token = refresh_data.refresh_token if refresh_data else request.cookies.get("refresh_token")
    if not token:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    session = db.query(UserSession).filter(
        UserSession.refresh_token == token,
        UserSession.expires_at > utcnow()
    ).first()

    if not session:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    user = db.query(User).filter(User.id == session.user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    new_access_token = security.create_access_token(user.id)
    _set_auth_cookie(response, "access_token", new_access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)

    return {"access_token": new_access_token, "role": user.role}


@router.post("/logout")
def logout(
    response: Response,
    request: Request,
    body: Optional[LogoutRequest] = Body(None),
    db: Session = Depends(deps.get_db)
):
    refresh_token = (body.refresh_token if body else None) or request.cookies.get("refresh_token")
    if refresh_token:
        db.query(UserSession).filter(UserSession.refresh_token == refresh_token).delete()
        db.commit()

    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(deps.get_current_user)) -> Any:
    return current_user
