from datetime import datetime
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.auth import User
from app.models.lms import Assignment, AssignmentSubmission, SubmissionStatus
from app.models.users import UserRole
from app.schemas.lms import AssignmentResponse, SubmissionResponse
from app.services import classes as class_service
from app.utils.schedule import as_utc, days_remaining, utcnow


def get_assignment_or_404(db: Session, assignment_id) -> Assignment:
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment


def ensure_can_view_assignment(db: Session, assignment: Assignment, user: User) -> None:
    if not class_service.can_view_class(db, assignment.class_, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this assignment",
        )


def derive_status(
    assignment: Assignment,
    submission: Optional[AssignmentSubmission],
    now: Optional[datetime] = None,
) -> Tuple[str, bool, int]:
    """Work out (status, is_late, days_remaining) for one student's view of an assignment.

    A graded submission is "completed", a submitted one "submitted". Without a
    submission (drafts count as none) the assignment is "overdue" once the due
    date has passed and "pending" until then.
    """
    now = now or utcnow()
    due = as_utc(assignment.due_date)
    submitted_at = as_utc(submission.submitted_at) if submission else None
    is_late = bool(submitted_at and submitted_at > due)

    if submission and submission.status == SubmissionStatus.graded:
        state = "completed"
    elif submission and submission.status == SubmissionStatus.submitted:
        state = "submitted"
    elif due < now:
        state = "overdue"
    else:
        state = "pending"

    return state, is_late, days_remaining(due, now)


def to_submission_response(submission: AssignmentSubmission) -> SubmissionResponse:
    out = SubmissionResponse.model_validate(submission)
    if submission.assignment:
        out.assignment_title = submission.assignment.title
        out.assignment_points = submission.assignment.points
        if submission.assignment.class_:
            out.class_name = submission.assignment.class_.name
    return out


def to_assignment_response(
    assignment: Assignment,
    submission: Optional[AssignmentSubmission] = None,
    student_view: bool = False,
    counts: Optional[Dict[str, int]] = None,
) -> AssignmentResponse:
    out = AssignmentResponse.model_validate(assignment)
    out.class_name = assignment.class_.name if assignment.class_ else None
    out.teacher_name = assignment.teacher.name if assignment.teacher else None

    if submission is not None:
        out.submission = to_submission_response(submission)

    if student_view:
        out.status, out.is_late, out.days_remaining = derive_status(assignment, submission)

    if counts is not None:
        out.submission_count = counts.get("submissions", 0)
        out.graded_count = counts.get("graded", 0)
    return out


def submission_counts(db: Session, assignment: Assignment) -> Dict[str, int]:
    query = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment.id,
        AssignmentSubmission.status != SubmissionStatus.draft,
    )
    return {
        "submissions": query.count(),
        "graded": query.filter(AssignmentSubmission.status == SubmissionStatus.graded).count(),
    }


def own_submission(db: Session, assignment_id, student_id) -> Optional[AssignmentSubmission]:
    return (
        db.query(AssignmentSubmission)
        .filter(
            AssignmentSubmission.assignment_id == assignment_id,
            AssignmentSubmission.student_id == student_id,
        )
        .first()
    )


def can_grade(assignment: Assignment, user: User) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    return user.role == UserRole.TEACHER and assignment.class_.teacher_id == user.id
