from app.core.database import Base
from app.models.auth import User, UserSession
from app.models.users import (
    UserRole,
    NotificationType,
    UserNotificationPreference,
    Notification,
)
from app.models.lms import (
    LearningMethod,
    AssignmentType,
    SubmissionStatus,
    AttendanceStatus,
    Class,
    ClassEnrollment,
    Assignment,
    AssignmentFile,
    AssignmentSubmission,
    SubmissionFile,
    AttendanceRecord,
    CourseMaterial,
)
from app.models.meetings import (
    MeetingType,
    MeetingStatus,
    Meeting,
    MeetingParticipant,
)
