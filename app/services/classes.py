import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.auth import User
from app.models.lms import Class, ClassEnrollment
from app.models.users import UserRole
from app.schemas.lms import ClassResponse, ClassDetailResponse
from app.schemas.users import UserSummary

logger = logging.getLogger(__name__)


def get_class_or_404(db: Session, class_id) -> Class:
    cls = db.query(Class).filter(Class.id == class_id).first()
    if not cls:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return cls


def get_user_with_role(db: Session, user_id, role: UserRole, label: str) -> User:
    user = db.query(User).filter(User.id == user_id, User.role == role).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return user


def is_enrolled(db: Session, class_id, student_id) -> bool:
    return (
        db.query(ClassEnrollment)
        .filter(ClassEnrollment.class_id == class_id, ClassEnrollment.student_id == student_id)
        .first()
        is not None
    )


def enrollment_counts(db: Session, class_ids: Iterable) -> Dict:
    class_ids = list(class_ids)
    if not class_ids:
        return {}
    rows = (
        db.query(ClassEnrollment.class_id, func.count(ClassEnrollment.id))
        .filter(ClassEnrollment.class_id.in_(class_ids))
        .group_by(ClassEnrollment.class_id)
        .all()
    )
    return {class_id: count for class_id, count in rows}


def can_view_class(db: Session, cls: Class, user: User) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.TEACHER:
        return cls.teacher_id == user.id
    return is_enrolled(db, cls.id, user.id)


def ensure_class_owner(cls: Class, user: User, allow_admin: bool = True) -> None:
    """Teachers may only act on their own classes."""
    if allow_admin and user.role == UserRole.ADMIN:
        return
    if user.role == UserRole.TEACHER and cls.teacher_id == user.id:
        return
    logger.info("User %s is not allowed to manage class %s", user.id, cls.id)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have permission to manage this class",
    )


def enroll_student(db: Session, class_id, student_id) -> ClassEnrollment:
    """Enroll a student, applying the same checks for admins and self-service."""
    cls = get_class_or_404(db, class_id)
    get_user_with_role(db, student_id, UserRole.STUDENT, "Student")

    if is_enrolled(db, cls.id, student_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student is already enrolled in this class",
        )

    capacity = cls.max_students or settings.DEFAULT_MAX_STUDENTS
    current = enrollment_counts(db, [cls.id]).get(cls.id, 0)
    if current >= capacity:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class is full")

    enrollment = ClassEnrollment(class_id=cls.id, student_id=student_id)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    logger.info("Enrolled student %s in class %s", student_id, cls.id)
    return enrollment


def unenroll_student(db: Session, class_id, student_id) -> None:
    get_class_or_404(db, class_id)
    enrollment = (
        db.query(ClassEnrollment)
        .filter(ClassEnrollment.class_id == class_id, ClassEnrollment.student_id == student_id)
        .first()
    )
    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student is not enrolled in this class",
        )
    db.delete(enrollment)
    db.commit()
    logger.info("Unenrolled student %s from class %s", student_id, class_id)


def class_students(db: Session, class_id) -> List[User]:
    return (
        db.query(User)
        .join(ClassEnrollment, ClassEnrollment.student_id == User.id)
        .filter(ClassEnrollment.class_id == class_id)
        .order_by(User.name)
        .all()
    )


def to_class_response(cls: Class, enrolled_count: int = 0) -> ClassResponse:
    out = ClassResponse.model_validate(cls)
    out.teacher_name = cls.teacher.name if cls.teacher else None
    out.enrolled_count = enrolled_count
    return out


def to_class_list(db: Session, classes: List[Class]) -> List[ClassResponse]:
    counts = enrollment_counts(db, [c.id for c in classes])
    return [to_class_response(c, counts.get(c.id, 0)) for c in classes]


def to_class_detail(db: Session, cls: Class, include_students: bool = True) -> ClassDetailResponse:
    students = class_students(db, cls.id)
    out = ClassDetailResponse.model_validate(cls)
    out.teacher_name = cls.teacher.name if cls.teacher else None
    out.enrolled_count = len(students)
    if include_students:
        out.students = [UserSummary.model_validate(s) for s in students]
    return out


def visible_classes(db: Session, user: User, teacher_id: Optional[UUID] = None) -> List[Class]:
    query = db.query(Class)
    if user.role == UserRole.TEACHER:
        query = query.filter(Class.teacher_id == user.id)
    elif user.role == UserRole.STUDENT:
        query = query.join(ClassEnrollment, ClassEnrollment.class_id == Class.id).filter(
            ClassEnrollment.student_id == user.id
        )
    elif teacher_id:
        query = query.filter(Class.teacher_id == teacher_id)
    return query.order_by(Class.start_date.desc(), Class.name).all()
