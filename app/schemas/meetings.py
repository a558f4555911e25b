from typing import Dict, List, Optional
from uuid import UUID
from datetime import date, datetime, time
from pydantic import BaseModel, Field

from app.models.meetings import MeetingType, MeetingStatus


class MeetingCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: MeetingType = MeetingType.GROUP
    class_id: UUID
    student_id: Optional[UUID] = None
    date: date
    time: time
    duration: str = "1 hour"  # "30 minutes", "1 hour", "1.5 hours"
    is_online: bool = True
    meeting_link: Optional[str] = None
    location: Optional[str] = None


class MeetingCreated(BaseModel):
    id: UUID
    title: str
    status: MeetingStatus


class MeetingResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type: MeetingType
    start_time: datetime
    end_time: datetime
    duration: Optional[str] = None
    is_online: bool = True
    meeting_link: Optional[str] = None
    location: Optional[str] = None
    status: MeetingStatus
    max_participants: int
    teacher_id: UUID
    teacher_name: Optional[str] = None
    class_id: Optional[UUID] = None
    class_name: Optional[str] = None
    student_id: Optional[UUID] = None
    student_name: Optional[str] = None
    participant_count: int = 0
    is_joined: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeetingCalendar(BaseModel):
    year: int
    month: int
    # keyed by ISO date
    days: Dict[str, List[MeetingResponse]]
