import logging
from typing import Any
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core import security
from app.models.auth import User, UserSession
from app.models.lms import Class, ClassEnrollment
from app.models.users import UserRole
from app.schemas.users import (
    AvatarResponse,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    PasswordChange,
    ProfileClass,
    ProfileResponse,
    ProfileUpdate,
    UserResponse,
)
from app.services.notifications import get_or_create_preferences
from app.services.storage import AVATAR_EXTENSIONS, LocalStorage, build_key, get_storage, read_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile(db: Session, user: User) -> ProfileResponse:
    # the ORM user carries its own "enrollments" relationship, so copy the plain fields only
    profile = ProfileResponse(**UserResponse.model_validate(user).model_dump())

    if user.role == UserRole.STUDENT:
        rows = (
            db.query(ClassEnrollment)
            .filter(ClassEnrollment.student_id == user.id)
            .order_by(ClassEnrollment.enrolled_at.desc())
            .all()
        )
        profile.enrollments = [
            ProfileClass(
                id=e.class_.id,
                name=e.class_.name,
                teacher_name=e.class_.teacher.name if e.class_.teacher else None,
                enrolled_at=e.enrolled_at,
            )
            for e in rows
        ]
    elif user.role == UserRole.TEACHER:
        classes = db.query(Class).filter(Class.teacher_id == user.id).order_by(Class.name).all()
        profile.classes = [
            ProfileClass(id=c.id, name=c.name, teacher_name=user.name) for c in classes
        ]
    return profile


@router.get("", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    return _profile(db, current_user)


@router.put("", response_model=ProfileResponse)
def update_profile(
    profile_in: ProfileUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    email = profile_in.email.lower()
    if email != current_user.email:
        taken = db.query(User).filter(User.email == email, User.id != current_user.id).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists",
            )

    current_user.name = security.sanitize_input(profile_in.name, max_length=200)
    current_user.email = email
    current_user.phone = security.sanitize_input(profile_in.phone, max_length=50) or None
    db.commit()
    db.refresh(current_user)
    return _profile(db, current_user)


@router.post("/password")
def change_password(
    password_in: PasswordChange,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    if not security.verify_password(password_in.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.password_hash = security.get_password_hash(password_in.new_password)
    # Invalidate existing sessions
    db.query(UserSession).filter(UserSession.user_id == current_user.id).delete()
    db.commit()
    logger.info("Password changed for %s", current_user.email)
    return {"message": "Password updated successfully"}


@router.get("/notification-preferences", response_model=NotificationPreferences)
def get_notification_preferences(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    return get_or_create_preferences(db, current_user)


@router.put("/notification-preferences", response_model=NotificationPreferences)
def update_notification_preferences(
    prefs_in: NotificationPreferencesUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    prefs = get_or_create_preferences(db, current_user)
    for field, value in prefs_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(prefs, field, value)
    db.commit()
    db.refresh(prefs)
    return prefs


@router.post("/avatar", response_model=AvatarResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Avatar must be an image",
        )
    data = await read_upload(file, AVATAR_EXTENSIONS)

    old_key = storage.key_from_url(current_user.avatar_url)
    key = build_key("avatars", current_user.id, file.filename)

    with storage.staged(key, data) as file_url:
        current_user.avatar_url = file_url
        db.commit()

    if old_key:
        storage.delete(old_key)
    return {"avatar_url": current_user.avatar_url}


@router.delete("/avatar", response_model=AvatarResponse)
def delete_avatar(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    old_key = storage.key_from_url(current_user.avatar_url)
    current_user.avatar_url = None
    db.commit()
    if old_key:
        storage.delete(old_key)
    return {"avatar_url": None}
