"""
Maintenance announcement models for GradeBook

Python attributes are snake_case; the JSON wire format is camelCase, with the
scheduling fields exposed as ``type``, ``scheduledStart`` and ``scheduledEnd``.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
from datetime import datetime
from enum import Enum

from gradebook.core.time_windows import as_utc
from gradebook.models.user import ANNOUNCEMENT_ROLES, ActorRef

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500
HISTORY_NOTE_MAX_LENGTH = 200
WINDOW_ORDER_MESSAGE = "Scheduled end time must be after start time"


class AnnouncementType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    SCHEDULED = "scheduled"


class HistoryAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"


def normalize_target_roles(roles: Optional[List[str]]) -> List[str]:
    """Empty means everyone; unknown roles are rejected, duplicates dropped."""
    if not roles:
        return list(ANNOUNCEMENT_ROLES)
    unknown = [role for role in roles if role not in ANNOUNCEMENT_ROLES]
    if unknown:
        raise ValueError(f"Unknown target roles: {', '.join(unknown)}")
    return list(dict.fromkeys(roles))


def _clean_services(services: Optional[List[str]]) -> Optional[List[str]]:
    if services is None:
        return None
    return [s.strip() for s in services if s and s.strip()]


class HistoryEntry(BaseModel):
    action: HistoryAction
    actor: str
    timestamp: datetime
    note: str = Field("", max_length=HISTORY_NOTE_MAX_LENGTH)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("actor", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> str:
        return str(v)

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)
    severity: AnnouncementType = Field(AnnouncementType.INFO, alias="type")
    window_start: datetime = Field(..., alias="scheduledStart")
    window_end: datetime = Field(..., alias="scheduledEnd")
    target_roles: List[str] = Field(default_factory=lambda: list(ANNOUNCEMENT_ROLES))
    affected_services: List[str] = Field(default_factory=list)
    show_on_dashboard: bool = True

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    @field_validator("window_start", "window_end")
    @classmethod
    def window_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("target_roles", mode="before")
    @classmethod
    def default_target_roles(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("target_roles")
    @classmethod
    def check_target_roles(cls, v: List[str]) -> List[str]:
        return normalize_target_roles(v)

    @field_validator("affected_services", mode="before")
    @classmethod
    def default_services(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("affected_services")
    @classmethod
    def clean_services(cls, v: List[str]) -> List[str]:
        return _clean_services(v)

    @model_validator(mode="after")
    def check_window(self) -> "AnnouncementCreate":
        if self.window_start >= self.window_end:
            raise ValueError(WINDOW_ORDER_MESSAGE)
        return self


class AnnouncementUpdate(BaseModel):
    """Partial update; the window is re-validated against the stored record"""
    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    message: Optional[str] = Field(None, min_length=1, max_length=MESSAGE_MAX_LENGTH)
    severity: Optional[AnnouncementType] = Field(None, alias="type")
    window_start: Optional[datetime] = Field(None, alias="scheduledStart")
    window_end: Optional[datetime] = Field(None, alias="scheduledEnd")
    target_roles: Optional[List[str]] = None
    affected_services: Optional[List[str]] = None
    show_on_dashboard: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    @field_validator("window_start", "window_end")
    @classmethod
    def window_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @field_validator("target_roles")
    @classmethod
    def check_target_roles(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_target_roles(v) if v is not None else None

    @field_validator("affected_services")
    @classmethod
    def clean_services(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_services(v)


class Announcement(BaseModel):
    """An announcement as stored in the ``maintenance_announcements`` table"""
    id: str
    title: str
    message: str
    severity: AnnouncementType = Field(AnnouncementType.INFO, alias="type")
    window_start: datetime = Field(..., alias="scheduledStart")
    window_end: datetime = Field(..., alias="scheduledEnd")
    is_active: bool = True
    show_on_dashboard: bool = True
    target_roles: List[str] = Field(default_factory=lambda: list(ANNOUNCEMENT_ROLES))
    affected_services: List[str] = Field(default_factory=list)
    created_by: str
    last_modified_by: Optional[str] = None
    history: List[HistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("created_by", "last_modified_by", mode="before")
    @classmethod
    def coerce_actors(cls, v: Any) -> Any:
        return str(v) if v is not None else None

    @field_validator("window_start", "window_end")
    @classmethod
    def window_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("target_roles", mode="before")
    @classmethod
    def stored_target_roles(cls, v: Any) -> List[str]:
        return list(v) if v else list(ANNOUNCEMENT_ROLES)

    @field_validator("affected_services", "history", mode="before")
    @classmethod
    def null_lists(cls, v: Any) -> Any:
        return [] if v is None else v


class HistoryEntryResponse(HistoryEntry):
    actor: ActorRef

    @field_validator("actor", mode="before")
    @classmethod
    def coerce_actor(cls, v: Any) -> Any:
        return {"id": str(v)} if isinstance(v, (str, int)) else v


class AnnouncementResponse(Announcement):
    """Announcement with actor references populated for API responses"""
    created_by: ActorRef
    last_modified_by: Optional[ActorRef] = None
    history: List[HistoryEntryResponse] = Field(default_factory=list)

    @field_validator("created_by", "last_modified_by", mode="before")
    @classmethod
    def coerce_actors(cls, v: Any) -> Any:
        return {"id": str(v)} if isinstance(v, (str, int)) else v
