import logging
from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.security import sanitize_input
from app.models.auth import User
from app.models.lms import Assignment, AssignmentSubmission, Class, SubmissionStatus
from app.models.users import NotificationType, UserRole
from app.schemas.lms import GradeSubmission, SubmissionCreate, SubmissionResponse
from app.services import assignments as assignment_service
from app.services import classes as class_service
from app.services.notifications import notify, notify_submission_graded
from app.utils.schedule import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def get_submission_or_404(db: Session, submission_id) -> AssignmentSubmission:
    submission = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.id == submission_id
    ).first()
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
def submit_assignment(
    submission_in: SubmissionCreate,
    response: Response,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    """Create or update the student's one submission for an assignment."""
    assignment = assignment_service.get_assignment_or_404(db, submission_in.assignment_id)

    if not class_service.is_enrolled(db, assignment.class_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not enrolled in this class",
        )

    new_status = SubmissionStatus(submission_in.status)
    content = sanitize_input(submission_in.content, max_length=50000) or None
    notes = sanitize_input(submission_in.notes, max_length=5000) or None

    submission = assignment_service.own_submission(db, assignment.id, current_user.id)
    if submission:
        if submission.status == SubmissionStatus.graded:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This submission has already been graded",
            )
        submission.content = content
        submission.notes = notes
        submission.status = new_status
        response.status_code = status.HTTP_200_OK
    else:
        submission = AssignmentSubmission(
            assignment_id=assignment.id,
            student_id=current_user.id,
            content=content,
            notes=notes,
            status=new_status,
        )
        db.add(submission)

    if new_status == SubmissionStatus.submitted:
        submission.submitted_at = utcnow()
        db.flush()
        notify(
            db,
            assignment.teacher_id,
            title="New submission",
            message=f"{current_user.name} submitted '{assignment.title}'",
            type=NotificationType.SUBMISSION,
            related_id=submission.id,
        )
    else:
        submission.submitted_at = None

    db.commit()
    db.refresh(submission)
    return assignment_service.to_submission_response(submission)


@router.get("", response_model=List[SubmissionResponse])
def list_submissions(
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    """Teachers get work waiting to be graded on their classes; admins get everything."""
    query = (
        db.query(AssignmentSubmission)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .join(Class, Class.id == Assignment.class_id)
    )

    if current_user.role == UserRole.TEACHER:
        query = query.filter(Class.teacher_id == current_user.id)
        status_filter = status_filter or SubmissionStatus.submitted

    if status_filter:
        query = query.filter(AssignmentSubmission.status == status_filter)

    submissions = query.order_by(AssignmentSubmission.submitted_at.desc()).all()
    return [assignment_service.to_submission_response(s) for s in submissions]


@router.post("/grade", response_model=SubmissionResponse)
def grade_submission(
    grade_in: GradeSubmission,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
) -> Any:
    submission = get_submission_or_404(db, grade_in.submission_id)
    assignment = submission.assignment

    if not assignment_service.can_grade(assignment, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only grade submissions for your own classes",
        )

    if submission.status == SubmissionStatus.draft:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Draft submissions cannot be graded",
        )

    if grade_in.grade < 0 or grade_in.grade > assignment.points:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Grade must be between 0 and {assignment.points}",
        )

    submission.grade = grade_in.grade
    submission.feedback = sanitize_input(grade_in.feedback, max_length=10000) or None
    submission.status = SubmissionStatus.graded
    submission.graded_at = utcnow()
    db.commit()
    db.refresh(submission)

    logger.info("Submission %s graded %s/%s by %s", submission.id, submission.grade, assignment.points, current_user.email)
    notify_submission_graded(db, submission)
    return assignment_service.to_submission_response(submission)


@router.get("/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    submission_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    submission = get_submission_or_404(db, submission_id)

    if current_user.role == UserRole.STUDENT:
        allowed = submission.student_id == current_user.id
    else:
        allowed = assignment_service.can_grade(submission.assignment, current_user)

    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this submission",
        )
    return assignment_service.to_submission_response(submission)
