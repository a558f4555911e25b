from typing import List, Any
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.core.database import get_db
from app.models.auth import User
from app.models.lms import Class, ClassEnrollment
from app.models.users import UserRole
from app.schemas.lms import ClassResponse, ClassStudents
from app.schemas.users import UserResponse, UserSummary
from app.services import classes as class_service

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_students(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    return db.query(User).filter(User.role == UserRole.STUDENT).order_by(User.name).all()


@router.get("/by-class", response_model=ClassStudents)
def students_by_class(
    class_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    """Students enrolled in a class, for its teacher or an admin."""
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)
    students = class_service.class_students(db, cls.id)
    return {"students": [UserSummary.model_validate(s) for s in students]}


@router.get("/{student_id}/classes", response_model=List[ClassResponse])
def student_classes(
    student_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    student = class_service.get_user_with_role(db, student_id, UserRole.STUDENT, "Student")
    classes = (
        db.query(Class)
        .join(ClassEnrollment, ClassEnrollment.class_id == Class.id)
        .filter(ClassEnrollment.student_id == student.id)
        .order_by(Class.name)
        .all()
    )
    return class_service.to_class_list(db, classes)
