"""
System maintenance models for GradeBook
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
from datetime import datetime
from enum import Enum

from gradebook.core.time_windows import as_utc
from gradebook.models.user import UserRole, ActorRef

MAINTENANCE_MESSAGE_MAX_LENGTH = 500
REASON_MAX_LENGTH = 200
DEFAULT_MAINTENANCE_MESSAGE = (
    "The system is currently under maintenance. "
    "Please be patient while we work to improve your experience."
)

# Roles that can be granted bypass; superadmin bypasses implicitly
GRANTABLE_BYPASS_ROLES = [role.value for role in UserRole if role is not UserRole.SUPERADMIN]


class MaintenanceType(str, Enum):
    SCHEDULED = "scheduled"
    EMERGENCY = "emergency"


class MaintenanceAction(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UPDATED = "updated"


def filter_bypass_roles(roles: Optional[List[str]]) -> List[str]:
    """Keep grantable roles only, in order, without duplicates"""
    if not roles:
        return []
    return list(dict.fromkeys(role for role in roles if role in GRANTABLE_BYPASS_ROLES))


class PreviousState(BaseModel):
    is_maintenance_mode: bool
    maintenance_message: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MaintenanceHistoryEntry(BaseModel):
    action: MaintenanceAction
    actor: str
    timestamp: datetime
    reason: str = ""
    previous_state: Optional[PreviousState] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("actor", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> str:
        return str(v)

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class MaintenanceConfig(BaseModel):
    """The single row of the ``system_maintenance`` table"""
    id: str
    is_maintenance_mode: bool = False
    maintenance_type: MaintenanceType = MaintenanceType.SCHEDULED
    maintenance_message: str = DEFAULT_MAINTENANCE_MESSAGE
    reason: str = ""
    estimated_completion: Optional[datetime] = None
    allowed_bypass_roles: List[str] = Field(default_factory=list)
    last_modified_by: Optional[str] = None
    maintenance_history: List[MaintenanceHistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("last_modified_by", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> Optional[str]:
        return str(v) if v is not None else None

    @field_validator("estimated_completion")
    @classmethod
    def completion_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @field_validator("maintenance_message", "reason", mode="before")
    @classmethod
    def null_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("allowed_bypass_roles", "maintenance_history", mode="before")
    @classmethod
    def null_lists(cls, v: Any) -> Any:
        return [] if v is None else v


class MaintenanceUpdate(BaseModel):
    is_maintenance_mode: bool
    maintenance_type: Optional[MaintenanceType] = None
    maintenance_message: Optional[str] = Field(None, max_length=MAINTENANCE_MESSAGE_MAX_LENGTH)
    reason: Optional[str] = Field(None, max_length=REASON_MAX_LENGTH)
    estimated_completion: Optional[datetime] = None
    allowed_bypass_roles: Optional[List[str]] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    @field_validator("estimated_completion")
    @classmethod
    def completion_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @field_validator("allowed_bypass_roles")
    @classmethod
    def grantable_roles(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return filter_bypass_roles(v) if v is not None else None


class MaintenanceStatus(BaseModel):
    """Public projection polled by clients to decide whether to gate the app"""
    is_maintenance_mode: bool
    maintenance_type: MaintenanceType = MaintenanceType.SCHEDULED
    maintenance_message: Optional[str] = None
    reason: Optional[str] = None
    estimated_completion: Optional[datetime] = None
    allowed_bypass_roles: List[str] = Field(default_factory=list)
    can_bypass: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MaintenanceHistoryEntryResponse(MaintenanceHistoryEntry):
    actor: ActorRef

    @field_validator("actor", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> Any:
        return {"id": str(v)} if isinstance(v, (str, int)) else v


class MaintenanceConfigResponse(MaintenanceConfig):
    last_modified_by: Optional[ActorRef] = None
    maintenance_history: List[MaintenanceHistoryEntryResponse] = Field(default_factory=list)

    @field_validator("last_modified_by", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> Any:
        return {"id": str(v)} if isinstance(v, (str, int)) else v


class MaintenanceUpdateResponse(BaseModel):
    message: str
    maintenance: MaintenanceConfigResponse


class MaintenanceHistoryResponse(BaseModel):
    history: List[MaintenanceHistoryEntryResponse]
    total_entries: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
