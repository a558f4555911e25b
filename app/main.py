import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import configure_logging
from app import models  # noqa: F401  registers every mapper
from app.api.v1 import (
    auth_router,
    users_router,
    students_router,
    teachers_router,
    classes_router,
    materials_router,
    assignments_router,
    submissions_router,
    files_router,
    meetings_router,
    profile_router,
    notifications_router,
    dashboard_router,
)

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME, openapi_url=f"{settings.API_PREFIX}/openapi.json"
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)

register_exception_handlers(app)

# Mount static files for uploads
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include Routers
api = settings.API_PREFIX
app.include_router(auth_router, prefix=f"{api}/auth", tags=["Auth"])
app.include_router(users_router, prefix=f"{api}/users", tags=["Users"])
app.include_router(students_router, prefix=f"{api}/students", tags=["Students"])
app.include_router(teachers_router, prefix=f"{api}/teachers", tags=["Teachers"])
app.include_router(classes_router, prefix=f"{api}/classes", tags=["Classes"])
app.include_router(materials_router, prefix=f"{api}/materials", tags=["Classes"])
app.include_router(assignments_router, prefix=f"{api}/assignments", tags=["Assignments"])
app.include_router(submissions_router, prefix=f"{api}/submissions", tags=["Submissions"])
app.include_router(files_router, prefix=api, tags=["Files"])
app.include_router(meetings_router, prefix=f"{api}/meetings", tags=["Meetings"])
app.include_router(profile_router, prefix=f"{api}/profile", tags=["Profile"])
app.include_router(
    notifications_router, prefix=f"{api}/notifications", tags=["Notifications"]
)
app.include_router(dashboard_router, prefix=f"{api}/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}


@app.get("/health")
async def health():
    return {"status": "ok"}
