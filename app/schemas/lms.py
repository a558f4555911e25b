from typing import List, Optional, Literal
from uuid import UUID
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.lms import (
    LearningMethod,
    AssignmentType,
    SubmissionStatus,
    AttendanceStatus,
)
from app.schemas.users import UserSummary
from app.utils.schedule import as_utc

# Labels used by the class form alongside the stored values
LEARNING_METHOD_ALIASES = {
    "online": LearningMethod.ONLINE,
    "offline": LearningMethod.IN_PERSON,
    "in_person": LearningMethod.IN_PERSON,
    "in-person": LearningMethod.IN_PERSON,
    "hybrid": LearningMethod.BLENDED,
    "blended": LearningMethod.BLENDED,
}


# --- Classes ---


class ClassBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    teacher_id: UUID
    start_date: date
    end_date: date
    learning_method: LearningMethod = LearningMethod.ONLINE
    max_students: Optional[int] = Field(None, ge=1)
    tags: List[str] = []
    schedule: Optional[str] = None
    image: Optional[str] = None
    meeting_url: Optional[str] = None
    contact_group: Optional[str] = None

    @field_validator("learning_method", mode="before")
    @classmethod
    def normalize_learning_method(cls, value):
        if isinstance(value, str):
            return LEARNING_METHOD_ALIASES.get(value.strip().lower(), value)
        return value

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ClassCreate(ClassBase):
    pass


class ClassUpdate(ClassBase):
    pass


class ClassResponse(BaseModel):
    id: UUID
    name: str
    description: str
    teacher_id: UUID
    start_date: date
    end_date: date
    learning_method: Optional[LearningMethod] = None
    max_students: int
    tags: Optional[List[str]] = []
    schedule: Optional[str] = None
    image: Optional[str] = None
    meeting_url: Optional[str] = None
    contact_group: Optional[str] = None
    created_at: Optional[datetime] = None
    teacher_name: Optional[str] = None
    enrolled_count: int = 0

    class Config:
        from_attributes = True


class ClassDetailResponse(ClassResponse):
    students: List[UserSummary] = []


class ClassStudents(BaseModel):
    students: List[UserSummary]


# --- Enrollments ---


class EnrollmentCreate(BaseModel):
    student_id: UUID


class EnrollmentResponse(BaseModel):
    id: UUID
    class_id: UUID
    student_id: UUID
    enrolled_at: Optional[datetime] = None
    student: Optional[UserSummary] = None

    class Config:
        from_attributes = True


# --- Attendance ---


class AttendanceMark(BaseModel):
    student_id: UUID
    date: date
    status: AttendanceStatus


class AttendanceResponse(BaseModel):
    id: UUID
    class_id: UUID
    student_id: UUID
    date: date
    status: AttendanceStatus
    marked_by: Optional[UUID] = None

    class Config:
        from_attributes = True


class ClassDates(BaseModel):
    dates: List[date]
    today: Optional[date] = None


# --- Materials ---


class CourseMaterialResponse(BaseModel):
    id: UUID
    class_id: UUID
    name: str
    description: Optional[str] = None
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    uploaded_by: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Files ---


class AttachmentResponse(BaseModel):
    id: UUID
    file_name: str
    file_size: int
    file_type: Optional[str] = None
    file_url: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FileUploadResponse(BaseModel):
    id: UUID
    file_url: str
    file_name: str


# --- Assignments ---


class AssignmentBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    class_id: UUID
    due_date: datetime
    points: int = Field(100, ge=0)
    assignment_type: AssignmentType = AssignmentType.essay

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AssignmentCreate(AssignmentBase):
    pass


class AssignmentUpdate(AssignmentBase):
    # a full replacement: nothing may be omitted
    points: int = Field(..., ge=0)
    assignment_type: AssignmentType


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    content: Optional[str] = None
    notes: Optional[str] = None
    status: SubmissionStatus
    submitted_at: Optional[datetime] = None
    grade: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    files: List[AttachmentResponse] = []
    student: Optional[UserSummary] = None
    assignment_title: Optional[str] = None
    assignment_points: Optional[int] = None
    class_name: Optional[str] = None

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    id: UUID
    title: str
    description: str
    class_id: UUID
    teacher_id: UUID
    due_date: datetime
    points: int
    assignment_type: AssignmentType
    created_at: Optional[datetime] = None
    class_name: Optional[str] = None
    teacher_name: Optional[str] = None
    files: List[AttachmentResponse] = []
    submission: Optional[SubmissionResponse] = None
    # staff view only
    submission_count: Optional[int] = None
    graded_count: Optional[int] = None
    # student view only
    status: Optional[Literal["pending", "submitted", "completed", "overdue"]] = None
    is_late: Optional[bool] = None
    days_remaining: Optional[int] = None

    class Config:
        from_attributes = True


# --- Submissions ---


class SubmissionCreate(BaseModel):
    assignment_id: UUID
    content: Optional[str] = None
    notes: Optional[str] = None
    status: Literal["submitted", "draft"] = "submitted"


class GradeSubmission(BaseModel):
    submission_id: UUID
    grade: float = Field(..., allow_inf_nan=False)
    feedback: Optional[str] = None
