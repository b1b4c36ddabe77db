"""
System Maintenance API Endpoints
"""

from fastapi import APIRouter, Depends
from typing import Optional
from datetime import datetime

from gradebook.core import maintenance
from gradebook.core.logging_config import get_logger
from gradebook.core.response_helpers import populate_maintenance_config, fetch_actor_profiles
from gradebook.core.security import get_optional_user, require_role
from gradebook.core.supabase import get_db
from gradebook.core.time_windows import utc_now
from gradebook.models.maintenance import (
    MaintenanceConfigResponse,
    MaintenanceHistoryEntryResponse,
    MaintenanceHistoryResponse,
    MaintenanceStatus,
    MaintenanceUpdate,
    MaintenanceUpdateResponse,
)
from gradebook.models.user import MANAGEMENT_ROLES, ActorRef

logger = get_logger(__name__)
router = APIRouter()


@router.get("/status", response_model=MaintenanceStatus)
async def get_maintenance_status(
    current_user: Optional[dict] = Depends(get_optional_user),
    db=Depends(get_db)
):
    """Public maintenance status; ``canBypass`` is computed for an authenticated caller"""
    config = maintenance.get_current_config(db)
    status_response = maintenance.build_status(config, current_user)
    logger.debug(
        f"Maintenance status: mode={config.is_maintenance_mode}, "
        f"role={(current_user or {}).get('role', 'anonymous')}, canBypass={status_response.can_bypass}"
    )
    return status_response


@router.get("", response_model=MaintenanceConfigResponse)
async def get_maintenance_details(
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Full maintenance configuration"""
    return populate_maintenance_config(maintenance.get_current_config(db), db)


@router.put("", response_model=MaintenanceUpdateResponse)
async def update_maintenance_mode(
    update_data: MaintenanceUpdate,
    now: datetime = Depends(utc_now),
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Enable, disable or edit maintenance mode"""
    config = maintenance.update_config(db, update_data, current_user["sub"], now)
    state = "enabled" if config.is_maintenance_mode else "disabled"
    return MaintenanceUpdateResponse(
        message=f"Maintenance mode {state} successfully",
        maintenance=populate_maintenance_config(config, db),
    )


@router.get("/history", response_model=MaintenanceHistoryResponse)
async def get_maintenance_history(
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Maintenance history, newest first"""
    history = maintenance.get_history(db)
    profiles = fetch_actor_profiles(db, (entry.actor for entry in history))
    entries = [
        MaintenanceHistoryEntryResponse.model_validate({
            **entry.model_dump(),
            "actor": profiles.get(entry.actor) or ActorRef(id=entry.actor),
        })
        for entry in history
    ]
    return MaintenanceHistoryResponse(history=entries, total_entries=len(entries))


@router.delete("/history")
async def clear_maintenance_history(
    now: datetime = Depends(utc_now),
    current_user: dict = Depends(require_role(MANAGEMENT_ROLES)),
    db=Depends(get_db)
):
    """Clear the maintenance history"""
    maintenance.clear_history(db, now)
    return {"message": "Maintenance history cleared successfully"}
