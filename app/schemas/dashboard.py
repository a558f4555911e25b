from pydantic import BaseModel
from typing import Dict

from app.models.users import UserRole


class DashboardResponse(BaseModel):
    role: UserRole
    # counters differ per role, e.g. "classes", "pending_assignments"
    stats: Dict[str, int]
