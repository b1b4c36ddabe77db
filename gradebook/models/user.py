from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from enum import Enum


class UserRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"
    SECRETARY = "secretary"


# Roles an announcement can target; superadmin is never an audience
ANNOUNCEMENT_ROLES = [
    UserRole.ADMIN.value,
    UserRole.TEACHER.value,
    UserRole.STUDENT.value,
    UserRole.PARENT.value,
    UserRole.SECRETARY.value,
]

# Roles that manage announcements and maintenance mode
MANAGEMENT_ROLES = [UserRole.SUPERADMIN.value]

# Roles that are never locked out by maintenance mode
ALWAYS_BYPASS_ROLES = frozenset({UserRole.SUPERADMIN.value})


class ActorRef(BaseModel):
    """Reference to the user behind a change, populated from profiles when available"""
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
