import logging
from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core import security
from app.models.auth import User
from app.models.lms import AssignmentSubmission, SubmissionFile
from app.models.users import UserRole
from app.schemas.users import UserCreate, UserUpdate, UserResponse
from app.services.storage import LocalStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _ensure_admin_or_self(current_user: User, user_id: UUID) -> None:
    if current_user.role != UserRole.ADMIN and current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own account",
        )


@router.get("", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at.desc()).all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
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
        role=user_in.role,
        phone=user_in.phone,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s created %s user %s", current_user.email, user.role.value, user.email)
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    _ensure_admin_or_self(current_user, user_id)
    return _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    user_in: UserUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    _ensure_admin_or_self(current_user, user_id)
    user = _get_user_or_404(db, user_id)

    update_data = user_in.model_dump(exclude_unset=True)

    if current_user.role != UserRole.ADMIN:
        for admin_field in ("role", "is_active"):
            if admin_field in update_data and update_data[admin_field] != getattr(user, admin_field):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Only administrators can change {admin_field}",
                )

    if update_data.get("email"):
        email = update_data["email"].lower()
        taken = db.query(User).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists",
            )
        update_data["email"] = email

    password = update_data.pop("password", None)
    if password:
        user.password_hash = security.get_password_hash(password)

    if update_data.get("name"):
        update_data["name"] = security.sanitize_input(update_data["name"], max_length=200)

    for field, value in update_data.items():
        if value is None and field in ("name", "email", "role", "is_active"):
            continue
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    if current_user.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    user = _get_user_or_404(db, user_id)

    if user.taught_classes:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Reassign or delete this teacher's classes first",
        )

    # submission files and the avatar go once the rows are gone
    keys = [
        f.storage_path
        for f in db.query(SubmissionFile)
        .join(AssignmentSubmission)
        .filter(AssignmentSubmission.student_id == user.id)
    ]
    avatar_key = storage.key_from_url(user.avatar_url)
    if avatar_key:
        keys.append(avatar_key)
    email = user.email

    db.delete(user)
    db.commit()
    for key in keys:
        storage.delete(key)
    logger.info("Admin %s deleted user %s (%d stored files)", current_user.email, email, len(keys))
    return {"message": "User deleted successfully"}
