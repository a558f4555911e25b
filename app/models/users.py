from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Enum as SQLAEnum,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.core.database import Base


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class NotificationType(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    SUBMISSION = "SUBMISSION"
    MEETING = "MEETING"
    SYSTEM = "SYSTEM"


class UserNotificationPreference(Base):
    __tablename__ = "user_notification_preferences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    email_assignments = Column(Boolean, default=True, nullable=False)
    email_announcements = Column(Boolean, default=True, nullable=False)
    email_messages = Column(Boolean, default=True, nullable=False)
    email_reminders = Column(Boolean, default=True, nullable=False)
    push_assignments = Column(Boolean, default=True, nullable=False)
    push_announcements = Column(Boolean, default=True, nullable=False)
    push_messages = Column(Boolean, default=True, nullable=False)
    push_reminders = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("app.models.auth.User", back_populates="notification_preferences")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SQLAEnum(NotificationType), nullable=False, default=NotificationType.SYSTEM)
    related_id = Column(UUID(as_uuid=True), nullable=True)  # assignment/submission/meeting id
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("app.models.auth.User", back_populates="notifications")
