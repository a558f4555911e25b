import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.auth import User
from app.models.lms import AssignmentSubmission
from app.models.users import Notification, NotificationType, UserNotificationPreference
from app.utils.email import send_grade_notification_email

logger = logging.getLogger(__name__)


def get_or_create_preferences(db: Session, user: User) -> UserNotificationPreference:
    prefs = (
        db.query(UserNotificationPreference)
        .filter(UserNotificationPreference.user_id == user.id)
        .first()
    )
    if prefs:
        return prefs

    prefs = UserNotificationPreference(user_id=user.id)
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


def notify(
    db: Session,
    user_id,
    title: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
    related_id=None,
) -> Notification:
    """Queue an in-app notification on the session. The caller commits."""
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_id=related_id,
    )
    db.add(notification)
    return notification


def notify_submission_graded(db: Session, submission: AssignmentSubmission) -> Optional[Notification]:
    student = submission.student
    assignment = submission.assignment
    if not student or not assignment:
        return None

    notification = notify(
        db,
        student.id,
        title="Assignment graded",
        message=f"Your submission for '{assignment.title}' was graded: {submission.grade:g}/{assignment.points}",
        type=NotificationType.ASSIGNMENT,
        related_id=assignment.id,
    )
    db.commit()

    prefs = get_or_create_preferences(db, student)
    if prefs.email_assignments:
        sent = send_grade_notification_email(
            student.email,
            student.name,
            assignment.title,
            submission.grade,
            assignment.points,
            submission.feedback,
        )
        logger.info("Grade email to %s sent=%s", student.email, sent)

    return notification
