import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api import deps
from app.core.config import settings
from app.core.security import sanitize_input
from app.models.auth import User
from app.models.lms import (
    AssignmentFile,
    AssignmentSubmission,
    AttendanceRecord,
    Class,
    ClassEnrollment,
    CourseMaterial,
    SubmissionFile,
    Assignment,
)
from app.models.meetings import Meeting
from app.models.users import UserRole
from app.schemas.lms import (
    AttendanceMark,
    AttendanceResponse,
    ClassCreate,
    ClassDates,
    ClassDetailResponse,
    ClassResponse,
    ClassUpdate,
    CourseMaterialResponse,
    EnrollmentCreate,
    EnrollmentResponse,
)
from app.services import classes as class_service
from app.services.storage import (
    MATERIAL_EXTENSIONS,
    LocalStorage,
    build_key,
    file_extension,
    get_storage,
    read_upload,
)
from app.utils.schedule import class_dates, todays_class_date

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== CLASSES ====================


@router.get("", response_model=List[ClassResponse])
def list_classes(
    teacher_id: Optional[UUID] = None,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """Admins see every class, teachers their own, students the ones they are enrolled in."""
    classes = class_service.visible_classes(db, current_user, teacher_id=teacher_id)
    return class_service.to_class_list(db, classes)


@router.get("/available", response_model=List[ClassResponse])
def available_classes(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    enrolled = select(ClassEnrollment.class_id).where(
        ClassEnrollment.student_id == current_user.id
    )
    classes = (
        db.query(Class)
        .filter(Class.id.not_in(enrolled))
        .order_by(Class.start_date.desc(), Class.name)
        .all()
    )
    return class_service.to_class_list(db, classes)


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    class_in: ClassCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    class_service.get_user_with_role(db, class_in.teacher_id, UserRole.TEACHER, "Teacher")

    data = class_in.model_dump()
    data["name"] = sanitize_input(data["name"], max_length=200)
    data["description"] = sanitize_input(data["description"], max_length=5000)
    if data.get("max_students") is None:
        data["max_students"] = settings.DEFAULT_MAX_STUDENTS

    cls = Class(**data)
    db.add(cls)
    db.commit()
    db.refresh(cls)
    logger.info("Class %s created by %s", cls.id, current_user.email)
    return class_service.to_class_response(cls, 0)


@router.get("/{class_id}", response_model=ClassDetailResponse)
def get_class(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    if not class_service.can_view_class(db, cls, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this class",
        )
    return class_service.to_class_detail(db, cls)


@router.put("/{class_id}", response_model=ClassResponse)
def update_class(
    class_id: UUID,
    class_in: ClassUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)

    if class_in.teacher_id != cls.teacher_id:
        if current_user.role != UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only administrators can reassign a class",
            )
        class_service.get_user_with_role(db, class_in.teacher_id, UserRole.TEACHER, "Teacher")
        # the class's assignments and meetings follow it to the new teacher
        db.query(Assignment).filter(Assignment.class_id == cls.id).update(
            {Assignment.teacher_id: class_in.teacher_id}, synchronize_session=False
        )
        db.query(Meeting).filter(Meeting.class_id == cls.id).update(
            {Meeting.teacher_id: class_in.teacher_id}, synchronize_session=False
        )
        logger.info("Class %s reassigned from %s to %s", cls.id, cls.teacher_id, class_in.teacher_id)

    update_data = class_in.model_dump()
    update_data["name"] = sanitize_input(update_data["name"], max_length=200)
    update_data["description"] = sanitize_input(update_data["description"], max_length=5000)
    if update_data.get("max_students") is None:
        update_data.pop("max_students")

    for field, value in update_data.items():
        setattr(cls, field, value)

    db.commit()
    db.refresh(cls)
    counts = class_service.enrollment_counts(db, [cls.id])
    return class_service.to_class_response(cls, counts.get(cls.id, 0))


@router.delete("/{class_id}")
def delete_class(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)

    # stored objects go once the rows are gone
    keys = [m.storage_path for m in cls.materials]
    keys += [
        f.storage_path
        for f in db.query(AssignmentFile).join(Assignment).filter(Assignment.class_id == cls.id)
    ]
    keys += [
        f.storage_path
        for f in db.query(SubmissionFile)
        .join(AssignmentSubmission)
        .join(Assignment)
        .filter(Assignment.class_id == cls.id)
    ]

    db.delete(cls)
    db.commit()

    for key in keys:
        storage.delete(key)
    logger.info("Class %s deleted by %s (%d files removed)", class_id, current_user.email, len(keys))
    return {"message": "Class deleted successfully"}


# ==================== ENROLLMENTS ====================


@router.get("/{class_id}/enrollments", response_model=List[EnrollmentResponse])
def list_enrollments(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)
    return (
        db.query(ClassEnrollment)
        .filter(ClassEnrollment.class_id == cls.id)
        .order_by(ClassEnrollment.enrolled_at)
        .all()
    )


@router.post(
    "/{class_id}/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def enroll_student(
    class_id: UUID,
    enrollment_in: EnrollmentCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    return class_service.enroll_student(db, class_id, enrollment_in.student_id)


@router.delete("/{class_id}/enrollments/{student_id}")
def remove_enrollment(
    class_id: UUID,
    student_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    class_service.unenroll_student(db, class_id, student_id)
    return {"message": "Student removed from class"}


@router.post(
    "/{class_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def self_enroll(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    return class_service.enroll_student(db, class_id, current_user.id)


@router.post("/{class_id}/unenroll")
def self_unenroll(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    class_service.unenroll_student(db, class_id, current_user.id)
    return {"message": "Successfully unenrolled from class"}


# ==================== ATTENDANCE ====================


@router.get("/{class_id}/attendance", response_model=List[AttendanceResponse])
def list_attendance(
    class_id: UUID,
    on: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)

    query = db.query(AttendanceRecord).filter(AttendanceRecord.class_id == cls.id)
    if on:
        query = query.filter(AttendanceRecord.date == on)
    return query.order_by(AttendanceRecord.date.desc()).all()


@router.post("/{class_id}/attendance", response_model=AttendanceResponse)
def mark_attendance(
    class_id: UUID,
    mark: AttendanceMark,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_teacher),
) -> Any:
    """Record present/absent for one student on one day, replacing any earlier mark."""
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user, allow_admin=False)

    if not class_service.is_enrolled(db, cls.id, mark.student_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Student is not enrolled in this class",
        )

    record = db.query(AttendanceRecord).filter(
        AttendanceRecord.class_id == cls.id,
        AttendanceRecord.student_id == mark.student_id,
        AttendanceRecord.date == mark.date,
    ).first()

    if record:
        record.status = mark.status
        record.marked_by = current_user.id
    else:
        record = AttendanceRecord(
            class_id=cls.id,
            student_id=mark.student_id,
            date=mark.date,
            status=mark.status,
            marked_by=current_user.id,
        )
        db.add(record)

    db.commit()
    db.refresh(record)
    return record


@router.get("/{class_id}/attendance/dates", response_model=ClassDates)
def attendance_dates(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)
    return {
        "dates": class_dates(cls.schedule, cls.start_date, cls.end_date),
        "today": todays_class_date(cls.schedule, cls.start_date, cls.end_date),
    }


# ==================== MATERIALS ====================


@router.get("/{class_id}/materials", response_model=List[CourseMaterialResponse])
def list_materials(
    class_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    if not class_service.can_view_class(db, cls, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this class",
        )
    return (
        db.query(CourseMaterial)
        .filter(CourseMaterial.class_id == cls.id)
        .order_by(CourseMaterial.created_at.desc())
        .all()
    )


@router.post(
    "/{class_id}/materials",
    response_model=CourseMaterialResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_material(
    class_id: UUID,
    name: str = Form(...),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    cls = class_service.get_class_or_404(db, class_id)
    class_service.ensure_class_owner(cls, current_user)

    data = await read_upload(file, MATERIAL_EXTENSIONS)
    key = build_key("materials", cls.id, file.filename)

    with storage.staged(key, data) as file_url:
        material = CourseMaterial(
            class_id=cls.id,
            name=sanitize_input(name, max_length=200) or file.filename,
            description=sanitize_input(description) or None,
            file_name=file.filename,
            file_type=file_extension(file.filename),
            file_size=len(data),
            file_url=file_url,
            storage_path=key,
            uploaded_by=current_user.id,
        )
        db.add(material)
        db.commit()

    db.refresh(material)
    return material
