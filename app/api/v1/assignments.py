import logging
from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.security import sanitize_input
from app.models.auth import User
from app.models.lms import (
    Assignment,
    AssignmentSubmission,
    Class,
    ClassEnrollment,
    SubmissionFile,
)
from app.models.users import NotificationType, UserRole
from app.schemas.lms import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentUpdate,
    SubmissionResponse,
)
from app.services import assignments as assignment_service
from app.services import classes as class_service
from app.services.notifications import notify
from app.services.storage import LocalStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[AssignmentResponse])
def list_assignments(
    class_id: Optional[UUID] = None,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """List assignments based on user role"""
    query = db.query(Assignment).join(Class, Class.id == Assignment.class_id)

    if current_user.role == UserRole.STUDENT:
        query = query.join(ClassEnrollment, ClassEnrollment.class_id == Class.id).filter(
            ClassEnrollment.student_id == current_user.id
        )
    elif current_user.role == UserRole.TEACHER:
        query = query.filter(Class.teacher_id == current_user.id)

    if class_id:
        query = query.filter(Assignment.class_id == class_id)

    assignments = query.order_by(Assignment.due_date).all()

    if current_user.role == UserRole.STUDENT:
        submissions = {
            s.assignment_id: s
            for s in db.query(AssignmentSubmission).filter(
                AssignmentSubmission.student_id == current_user.id
            )
        }
        return [
            assignment_service.to_assignment_response(
                a, submissions.get(a.id), student_view=True
            )
            for a in assignments
        ]

    # Add submission counts for staff
    return [
        assignment_service.to_assignment_response(
            a, counts=assignment_service.submission_counts(db, a)
        )
        for a in assignments
    ]


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def create_assignment(
    assignment_in: AssignmentCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    """Create an assignment in a class the teacher owns. Admin-created ones belong to the class teacher."""
    cls = class_service.get_class_or_404(db, assignment_in.class_id)
    class_service.ensure_class_owner(cls, current_user)

    assignment_data = assignment_in.model_dump()
    assignment_data["title"] = sanitize_input(assignment_data["title"], max_length=300)
    assignment_data["description"] = sanitize_input(assignment_data["description"], max_length=10000)

    assignment = Assignment(**assignment_data, teacher_id=cls.teacher_id)
    db.add(assignment)
    db.flush()

    for student in class_service.class_students(db, cls.id):
        notify(
            db,
            student.id,
            title="New assignment",
            message=f"'{assignment.title}' was posted in {cls.name}",
            type=NotificationType.ASSIGNMENT,
            related_id=assignment.id,
        )

    db.commit()
    db.refresh(assignment)
    logger.info("Assignment %s created in class %s by %s", assignment.id, cls.id, current_user.email)
    return assignment_service.to_assignment_response(assignment, counts={})


@router.get("/{assignment_id}", response_model=AssignmentResponse)
def get_assignment(
    assignment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    assignment = assignment_service.get_assignment_or_404(db, assignment_id)
    assignment_service.ensure_can_view_assignment(db, assignment, current_user)

    if current_user.role == UserRole.STUDENT:
        submission = assignment_service.own_submission(db, assignment.id, current_user.id)
        return assignment_service.to_assignment_response(assignment, submission, student_view=True)

    return assignment_service.to_assignment_response(
        assignment, counts=assignment_service.submission_counts(db, assignment)
    )


@router.put("/{assignment_id}", response_model=AssignmentResponse)
def update_assignment(
    assignment_id: UUID,
    assignment_in: AssignmentUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
) -> Any:
    assignment = assignment_service.get_assignment_or_404(db, assignment_id)
    cls = class_service.get_class_or_404(db, assignment_in.class_id)

    update_data = assignment_in.model_dump()
    update_data["title"] = sanitize_input(update_data["title"], max_length=300)
    update_data["description"] = sanitize_input(update_data["description"], max_length=10000)

    for field, value in update_data.items():
        setattr(assignment, field, value)
    assignment.teacher_id = cls.teacher_id

    db.commit()
    db.refresh(assignment)
    return assignment_service.to_assignment_response(
        assignment, counts=assignment_service.submission_counts(db, assignment)
    )


@router.delete("/{assignment_id}")
def delete_assignment(
    assignment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_admin),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    assignment = assignment_service.get_assignment_or_404(db, assignment_id)

    keys = [f.storage_path for f in assignment.files]
    keys += [
        f.storage_path
        for f in db.query(SubmissionFile)
        .join(AssignmentSubmission)
        .filter(AssignmentSubmission.assignment_id == assignment.id)
    ]

    db.delete(assignment)
    db.commit()

    for key in keys:
        storage.delete(key)
    logger.info("Assignment %s deleted by %s", assignment_id, current_user.email)
    return {"message": "Assignment deleted successfully"}


@router.get("/{assignment_id}/submissions", response_model=List[SubmissionResponse])
def list_assignment_submissions(
    assignment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """Everything for the class teacher and admins; students only see their own."""
    assignment = assignment_service.get_assignment_or_404(db, assignment_id)
    assignment_service.ensure_can_view_assignment(db, assignment, current_user)

    query = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment.id
    )
    if current_user.role == UserRole.STUDENT:
        query = query.filter(AssignmentSubmission.student_id == current_user.id)

    submissions = query.order_by(AssignmentSubmission.submitted_at.desc()).all()
    return [assignment_service.to_submission_response(s) for s in submissions]
