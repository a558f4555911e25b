from app.schemas.auth import (
    TokenPayload,
    Signup,
    Login,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    LogoutRequest,
)
from app.schemas.users import (
    UserSummary,
    UserCreate,
    UserUpdate,
    UserResponse,
    ProfileResponse,
    ProfileUpdate,
    PasswordChange,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    AvatarResponse,
)
from app.schemas.lms import (
    ClassCreate,
    ClassUpdate,
    ClassResponse,
    ClassDetailResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    AttendanceMark,
    AttendanceResponse,
    CourseMaterialResponse,
    FileUploadResponse,
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentResponse,
    SubmissionCreate,
    SubmissionResponse,
    GradeSubmission,
)
from app.schemas.meetings import (
    MeetingCreate,
    MeetingCreated,
    MeetingResponse,
    MeetingCalendar,
)
from app.schemas.notifications import NotificationResponse, UnreadCount
from app.schemas.dashboard import DashboardResponse
