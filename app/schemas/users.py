from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.models.users import UserRole


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: str

    class Config:
        from_attributes = True


class UserBase(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    role: UserRole = UserRole.STUDENT
    phone: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileClass(BaseModel):
    id: UUID
    name: str
    teacher_name: Optional[str] = None
    enrolled_at: Optional[datetime] = None


class ProfileResponse(UserResponse):
    enrollments: List[ProfileClass] = []
    classes: List[ProfileClass] = []


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class NotificationPreferences(BaseModel):
    email_assignments: bool = True
    email_announcements: bool = True
    email_messages: bool = True
    email_reminders: bool = True
    push_assignments: bool = True
    push_announcements: bool = True
    push_messages: bool = True
    push_reminders: bool = True

    class Config:
        from_attributes = True


class NotificationPreferencesUpdate(BaseModel):
    email_assignments: Optional[bool] = None
    email_announcements: Optional[bool] = None
    email_messages: Optional[bool] = None
    email_reminders: Optional[bool] = None
    push_assignments: Optional[bool] = None
    push_announcements: Optional[bool] = None
    push_messages: Optional[bool] = None
    push_reminders: Optional[bool] = None


class AvatarResponse(BaseModel):
    avatar_url: Optional[str] = None
