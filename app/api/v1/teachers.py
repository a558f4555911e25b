from typing import List, Any
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.core.database import get_db
from app.models.auth import User
from app.models.lms import Class
from app.models.users import UserRole
from app.schemas.lms import ClassResponse
from app.schemas.users import UserResponse
from app.services import classes as class_service

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_teachers(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    return db.query(User).filter(User.role == UserRole.TEACHER).order_by(User.name).all()


@router.get("/{teacher_id}/classes", response_model=List[ClassResponse])
def teacher_classes(
    teacher_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    """Classes taught by a teacher, each with its enrollment count."""
    teacher = class_service.get_user_with_role(db, teacher_id, UserRole.TEACHER, "Teacher")
    classes = db.query(Class).filter(Class.teacher_id == teacher.id).order_by(Class.name).all()
    return class_service.to_class_list(db, classes)
