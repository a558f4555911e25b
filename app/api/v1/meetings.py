import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.api import deps
from app.core.security import sanitize_input
from app.models.auth import User
from app.models.lms import ClassEnrollment
from app.models.meetings import Meeting, MeetingParticipant, MeetingStatus, MeetingType
from app.models.users import NotificationType, UserRole
from app.schemas.meetings import (
    MeetingCalendar,
    MeetingCreate,
    MeetingCreated,
    MeetingResponse,
)
from app.services import classes as class_service
from app.services.notifications import notify
from app.utils.schedule import as_utc, combine_date_time, duration_label, parse_duration, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PARTICIPANTS = {
    MeetingType.ONE_ON_ONE: 2,
    MeetingType.GROUP: 30,
}


def _scoped_query(db: Session, user: User):
    """Meetings the user takes part in."""
    query = db.query(Meeting)
    if user.role == UserRole.TEACHER:
        query = query.filter(Meeting.teacher_id == user.id)
    elif user.role == UserRole.STUDENT:
        joined = select(MeetingParticipant.meeting_id).where(MeetingParticipant.user_id == user.id)
        query = query.filter(or_(Meeting.student_id == user.id, Meeting.id.in_(joined)))
    return query


def _get_meeting_or_404(db: Session, meeting_id: UUID) -> Meeting:
    meeting = db.query(Meeting).filter(Meeting.id == meeting_id).first()
    if not meeting:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meeting not found")
    return meeting


def _is_participant(meeting: Meeting, user: User) -> bool:
    return any(p.user_id == user.id for p in meeting.participants)


def _can_view(db: Session, meeting: Meeting, user: User) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.TEACHER:
        return meeting.teacher_id == user.id
    if meeting.student_id == user.id or _is_participant(meeting, user):
        return True
    # open group meetings are visible to the class before joining
    return (
        meeting.type == MeetingType.GROUP
        and meeting.class_id is not None
        and class_service.is_enrolled(db, meeting.class_id, user.id)
    )


def to_meeting_response(meeting: Meeting, user: Optional[User] = None) -> MeetingResponse:
    out = MeetingResponse.model_validate(meeting)
    start = as_utc(meeting.start_time)
    end = as_utc(meeting.end_time)
    out.start_time = start
    out.end_time = end
    out.duration = duration_label(start, end)
    out.teacher_name = meeting.teacher.name if meeting.teacher else None
    out.class_name = meeting.class_.name if meeting.class_ else None
    out.student_name = meeting.student.name if meeting.student else None
    out.participant_count = len(meeting.participants)
    out.is_joined = bool(user and _is_participant(meeting, user))
    # meetings that have run are reported as completed
    if end < utcnow() and meeting.status in (MeetingStatus.open, MeetingStatus.confirmed):
        out.status = MeetingStatus.completed
    return out


@router.post("", response_model=MeetingCreated, status_code=status.HTTP_201_CREATED)
def create_meeting(
    meeting_in: MeetingCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_teacher),
) -> Any:
    cls = class_service.get_class_or_404(db, meeting_in.class_id)
    class_service.ensure_class_owner(cls, current_user, allow_admin=False)

    try:
        length = parse_duration(meeting_in.duration)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    start_time = combine_date_time(meeting_in.date, meeting_in.time)

    if meeting_in.type == MeetingType.ONE_ON_ONE:
        if not meeting_in.student_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A one-on-one meeting needs a student",
            )
        if not class_service.is_enrolled(db, cls.id, meeting_in.student_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Student is not enrolled in this class",
            )
        meeting_status = MeetingStatus.confirmed
        student_id = meeting_in.student_id
    else:
        meeting_status = MeetingStatus.open
        student_id = None

    meeting = Meeting(
        title=sanitize_input(meeting_in.title, max_length=300),
        description=sanitize_input(meeting_in.description, max_length=5000) or None,
        type=meeting_in.type,
        start_time=start_time,
        end_time=start_time + length,
        is_online=meeting_in.is_online,
        meeting_link=meeting_in.meeting_link,
        location=meeting_in.location,
        status=meeting_status,
        max_participants=MAX_PARTICIPANTS[meeting_in.type],
        teacher_id=current_user.id,
        class_id=cls.id,
        student_id=student_id,
    )
    db.add(meeting)
    db.flush()

    if student_id:
        db.add(MeetingParticipant(meeting_id=meeting.id, user_id=student_id))
        recipients = [student_id]
    else:
        recipients = [s.id for s in class_service.class_students(db, cls.id)]

    for user_id in recipients:
        notify(
            db,
            user_id,
            title="New meeting",
            message=f"{current_user.name} scheduled '{meeting.title}' on {start_time:%Y-%m-%d %H:%M} UTC",
            type=NotificationType.MEETING,
            related_id=meeting.id,
        )

    db.commit()
    db.refresh(meeting)
    logger.info("Meeting %s (%s) created by %s", meeting.id, meeting.type.value, current_user.email)
    return {"id": meeting.id, "title": meeting.title, "status": meeting.status}


@router.get("/upcoming", response_model=List[MeetingResponse])
def upcoming_meetings(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    meetings = (
        _scoped_query(db, current_user)
        .filter(Meeting.start_time >= utcnow(), Meeting.status != MeetingStatus.cancelled)
        .order_by(Meeting.start_time)
        .all()
    )
    return [to_meeting_response(m, current_user) for m in meetings]


@router.get("/past", response_model=List[MeetingResponse])
def past_meetings(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    meetings = (
        _scoped_query(db, current_user)
        .filter(Meeting.start_time < utcnow())
        .order_by(Meeting.start_time.desc())
        .all()
    )
    return [to_meeting_response(m, current_user) for m in meetings]


@router.get("/available", response_model=List[MeetingResponse])
def available_meetings(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    """Open group meetings in the student's classes that they have not joined yet."""
    enrolled = select(ClassEnrollment.class_id).where(ClassEnrollment.student_id == current_user.id)
    joined = select(MeetingParticipant.meeting_id).where(MeetingParticipant.user_id == current_user.id)
    meetings = (
        db.query(Meeting)
        .filter(
            Meeting.type == MeetingType.GROUP,
            Meeting.status == MeetingStatus.open,
            Meeting.start_time > utcnow(),
            Meeting.class_id.in_(enrolled),
            Meeting.id.not_in(joined),
        )
        .order_by(Meeting.start_time)
        .all()
    )
    return [to_meeting_response(m, current_user) for m in meetings]


@router.get("/calendar", response_model=MeetingCalendar)
def meeting_calendar(
    year: Optional[int] = Query(None, ge=1970, le=9998),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    today = utcnow()
    year = year or today.year
    month = month or today.month

    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc) if month == 12 else datetime(year, month + 1, 1, tzinfo=timezone.utc)

    meetings = (
        _scoped_query(db, current_user)
        .filter(Meeting.start_time >= start, Meeting.start_time < end)
        .order_by(Meeting.start_time)
        .all()
    )

    days = defaultdict(list)
    for meeting in meetings:
        day = as_utc(meeting.start_time).date().isoformat()
        days[day].append(to_meeting_response(meeting, current_user))

    return {"year": year, "month": month, "days": dict(days)}


@router.get("/{meeting_id}", response_model=MeetingResponse)
def get_meeting(
    meeting_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    meeting = _get_meeting_or_404(db, meeting_id)
    if not _can_view(db, meeting, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this meeting",
        )
    return to_meeting_response(meeting, current_user)


@router.post("/{meeting_id}/cancel", response_model=MeetingResponse)
def cancel_meeting(
    meeting_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    meeting = _get_meeting_or_404(db, meeting_id)

    allowed = (
        current_user.role == UserRole.ADMIN
        or meeting.teacher_id == current_user.id
        or (meeting.type == MeetingType.ONE_ON_ONE and meeting.student_id == current_user.id)
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot cancel this meeting",
        )
    if meeting.status == MeetingStatus.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Meeting is already cancelled")
    if as_utc(meeting.end_time) < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Meeting has already taken place")

    meeting.status = MeetingStatus.cancelled

    recipients = {p.user_id for p in meeting.participants} | {meeting.teacher_id}
    recipients.discard(current_user.id)
    for user_id in recipients:
        notify(
            db,
            user_id,
            title="Meeting cancelled",
            message=f"'{meeting.title}' on {as_utc(meeting.start_time):%Y-%m-%d %H:%M} UTC was cancelled",
            type=NotificationType.MEETING,
            related_id=meeting.id,
        )

    db.commit()
    db.refresh(meeting)
    logger.info("Meeting %s cancelled by %s", meeting.id, current_user.email)
    return to_meeting_response(meeting, current_user)


@router.post("/{meeting_id}/join", response_model=MeetingResponse)
def join_meeting(
    meeting_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
) -> Any:
    meeting = _get_meeting_or_404(db, meeting_id)

    if meeting.type != MeetingType.GROUP:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only group meetings can be joined")
    if meeting.status == MeetingStatus.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Meeting has been cancelled")
    if meeting.class_id and not class_service.is_enrolled(db, meeting.class_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not enrolled in this class",
        )

    # joining twice is a no-op
    if _is_participant(meeting, current_user):
        return to_meeting_response(meeting, current_user)

    if as_utc(meeting.start_time) <= utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Meeting has already started")
    if len(meeting.participants) >= meeting.max_participants:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Meeting is full")

    db.add(MeetingParticipant(meeting_id=meeting.id, user_id=current_user.id))
    db.commit()
    db.refresh(meeting)
    return to_meeting_response(meeting, current_user)
