"""
Maintenance Announcements API Endpoints
"""

from fastapi import APIRouter, Depends, status
from typing import List
from datetime import datetime

from gradebook.core.announcement_resolver import AnnouncementWindowResolver
from gradebook.core.logging_config import get_logger
from gradebook.core.response_helpers import populate_announcement, populate_announcements
from gradebook.core.security import get_current_user, require_role
from gradebook.core.supabase import get_db
from gradebook.core.time_windows import utc_now
from gradebook.models.announcement import AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse
from gradebook.models.user import MANAGEMENT_ROLES

logger = get_logger(__name__)
router = APIRouter()


@router.get("/active", response_model=List[AnnouncementResponse])
async def list_active_announcements(
    now: datetime = Depends(utc_now),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db)
):
    """Announcements the caller's dashboard should show right now (running or starting within 24h)"""
    role = current_user.get("role")
    announcements = AnnouncementWindowResolver(db).list_visible(now, role)
    logger.debug(f"Found {len(announcements)} visible announcements for role {role or 'any'}")
    return populate_announcements(announcements, db)


@router.get("", response_model=List[AnnouncementResponse])
async def list_announcements(
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """List every announcement, newest first"""
    announcements = AnnouncementWindowResolver(db).list_all()
    return populate_announcements(announcements, db)


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    announcement_data: AnnouncementCreate,
    now: datetime = Depends(utc_now),
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Create a new maintenance announcement"""
    announcement = AnnouncementWindowResolver(db).create_announcement(
        announcement_data, current_user["sub"], now
    )
    return populate_announcement(announcement, db)


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
async def get_announcement(
    announcement_id: str,
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Get a specific announcement with its history"""
    announcement = AnnouncementWindowResolver(db).get_announcement(announcement_id)
    return populate_announcement(announcement, db)


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: str,
    announcement_data: AnnouncementUpdate,
    now: datetime = Depends(utc_now),
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Update an announcement"""
    announcement = AnnouncementWindowResolver(db).update_announcement(
        announcement_id, announcement_data, current_user["sub"], now
    )
    return populate_announcement(announcement, db)


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Delete an announcement"""
    AnnouncementWindowResolver(db).delete_announcement(announcement_id)
    logger.info(f"Announcement {announcement_id} deleted by {current_user['sub']}")
    return {"message": "Maintenance announcement deleted successfully"}
