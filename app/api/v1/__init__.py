from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.students import router as students_router
from app.api.v1.teachers import router as teachers_router
from app.api.v1.classes import router as classes_router
from app.api.v1.materials import router as materials_router
from app.api.v1.assignments import router as assignments_router
from app.api.v1.submissions import router as submissions_router
from app.api.v1.files import router as files_router
from app.api.v1.meetings import router as meetings_router
from app.api.v1.profile import router as profile_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.dashboard import router as dashboard_router

__all__ = [
    "auth_router",
    "users_router",
    "students_router",
    "teachers_router",
    "classes_router",
    "materials_router",
    "assignments_router",
    "submissions_router",
    "files_router",
    "meetings_router",
    "profile_router",
    "notifications_router",
    "dashboard_router",
]
