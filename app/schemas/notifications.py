from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel

from app.models.users import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    related_id: Optional[UUID] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    count: int
