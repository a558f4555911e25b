from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.api import deps
from app.models.auth import User
from app.models.lms import (
    Assignment,
    AssignmentSubmission,
    Class,
    ClassEnrollment,
    SubmissionStatus,
)
from app.models.meetings import Meeting, MeetingParticipant, MeetingStatus
from app.models.users import UserRole
from app.schemas.dashboard import DashboardResponse
from app.utils.schedule import utcnow

router = APIRouter()


def _admin_stats(db: Session) -> dict:
    per_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return {
        "admins": per_role.get(UserRole.ADMIN, 0),
        "teachers": per_role.get(UserRole.TEACHER, 0),
        "students": per_role.get(UserRole.STUDENT, 0),
        "classes": db.query(Class).count(),
        "assignments": db.query(Assignment).count(),
        "submissions": db.query(AssignmentSubmission)
        .filter(AssignmentSubmission.status != SubmissionStatus.draft)
        .count(),
    }


def _teacher_stats(db: Session, user: User) -> dict:
    class_ids = select(Class.id).where(Class.teacher_id == user.id)
    return {
        "classes": db.query(Class).filter(Class.teacher_id == user.id).count(),
        "students": db.query(func.count(func.distinct(ClassEnrollment.student_id)))
        .filter(ClassEnrollment.class_id.in_(class_ids))
        .scalar()
        or 0,
        "assignments": db.query(Assignment).filter(Assignment.class_id.in_(class_ids)).count(),
        "submissions_to_grade": db.query(AssignmentSubmission)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .filter(
            Assignment.class_id.in_(class_ids),
            AssignmentSubmission.status == SubmissionStatus.submitted,
        )
        .count(),
        "upcoming_meetings": db.query(Meeting)
        .filter(
            Meeting.teacher_id == user.id,
            Meeting.start_time >= utcnow(),
            Meeting.status != MeetingStatus.cancelled,
        )
        .count(),
    }


def _student_stats(db: Session, user: User) -> dict:
    class_ids = select(ClassEnrollment.class_id).where(ClassEnrollment.student_id == user.id)
    handed_in = select(AssignmentSubmission.assignment_id).where(
        AssignmentSubmission.student_id == user.id,
        AssignmentSubmission.status != SubmissionStatus.draft,
    )
    joined = select(MeetingParticipant.meeting_id).where(MeetingParticipant.user_id == user.id)
    return {
        "classes": db.query(ClassEnrollment).filter(ClassEnrollment.student_id == user.id).count(),
        "pending_assignments": db.query(Assignment)
        .filter(
            Assignment.class_id.in_(class_ids),
            Assignment.id.not_in(handed_in),
            Assignment.due_date >= utcnow(),
        )
        .count(),
        "graded_submissions": db.query(AssignmentSubmission)
        .filter(
            AssignmentSubmission.student_id == user.id,
            AssignmentSubmission.status == SubmissionStatus.graded,
        )
        .count(),
        "upcoming_meetings": db.query(Meeting)
        .filter(
            or_(Meeting.student_id == user.id, Meeting.id.in_(joined)),
            Meeting.start_time >= utcnow(),
            Meeting.status != MeetingStatus.cancelled,
        )
        .count(),
    }


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """Role-specific counters for the landing page"""
    if current_user.role == UserRole.ADMIN:
        stats = _admin_stats(db)
    elif current_user.role == UserRole.TEACHER:
        stats = _teacher_stats(db, current_user)
    else:
        stats = _student_stats(db, current_user)
    return {"role": current_user.role, "stats": stats}
