"""System maintenance mode: singleton configuration and bypass rules."""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from gradebook.core.exceptions import DatabaseError
from gradebook.core.logging_config import get_logger
from gradebook.core.supabase_helpers import run_query
from gradebook.core.time_windows import as_utc
from gradebook.models.maintenance import (
    DEFAULT_MAINTENANCE_MESSAGE,
    MaintenanceAction,
    MaintenanceConfig,
    MaintenanceHistoryEntry,
    MaintenanceStatus,
    MaintenanceType,
    MaintenanceUpdate,
    PreviousState,
)
from gradebook.models.user import ALWAYS_BYPASS_ROLES

logger = get_logger(__name__)

MAINTENANCE_TABLE = "system_maintenance"
MAINTENANCE_HISTORY_LIMIT = 20


def can_bypass_maintenance(role: Optional[str], allowed_roles: Iterable[str]) -> bool:
    if not role:
        return False
    return role in ALWAYS_BYPASS_ROLES or role in set(allowed_roles)


def _parse(rows: List[Dict[str, Any]]) -> MaintenanceConfig:
    return MaintenanceConfig.model_validate(rows[0])


def get_current_config(db_client) -> MaintenanceConfig:
    """Return the maintenance singleton, creating the default row on first use"""
    rows = run_query(
        db_client.table(MAINTENANCE_TABLE).select("*").order("created_at").limit(1),
        "fetch maintenance status"
    )
    if rows:
        return _parse(rows)

    logger.info("No maintenance configuration found, creating default record")
    rows = run_query(
        db_client.table(MAINTENANCE_TABLE).insert({
            "is_maintenance_mode": False,
            "maintenance_type": MaintenanceType.SCHEDULED.value,
            "maintenance_message": DEFAULT_MAINTENANCE_MESSAGE,
            "reason": "",
            "allowed_bypass_roles": [],
            "maintenance_history": [],
        }),
        "create maintenance status"
    )
    if not rows:
        raise DatabaseError("Failed to create maintenance configuration", error_code="MAINTENANCE_CREATE_ERROR")
    return _parse(rows)


def update_config(db_client, update: MaintenanceUpdate, actor_id: str, now: datetime) -> MaintenanceConfig:
    """
    Apply a maintenance update and record it in the history.

    The action is ``enabled``/``disabled`` when the switch flips and
    ``updated`` otherwise. Only the newest MAINTENANCE_HISTORY_LIMIT entries
    are kept.
    """
    current = get_current_config(db_client)
    now = as_utc(now)

    supplied = update.model_dump(exclude_unset=True)
    payload: Dict[str, Any] = {"is_maintenance_mode": update.is_maintenance_mode}
    if update.maintenance_type is not None:
        payload["maintenance_type"] = update.maintenance_type.value
    if update.maintenance_message is not None:
        payload["maintenance_message"] = update.maintenance_message
    if "reason" in supplied:
        payload["reason"] = update.reason or ""
    if "estimated_completion" in supplied:
        payload["estimated_completion"] = (
            update.estimated_completion.isoformat() if update.estimated_completion else None
        )
    if update.allowed_bypass_roles is not None:
        payload["allowed_bypass_roles"] = update.allowed_bypass_roles

    if update.is_maintenance_mode != current.is_maintenance_mode:
        action = MaintenanceAction.ENABLED if update.is_maintenance_mode else MaintenanceAction.DISABLED
    else:
        action = MaintenanceAction.UPDATED

    entry = MaintenanceHistoryEntry(
        action=action,
        actor=actor_id,
        timestamp=now,
        reason=update.reason or "",
        previous_state=PreviousState(
            is_maintenance_mode=current.is_maintenance_mode,
            maintenance_message=current.maintenance_message,
        ),
    )
    history = [h.model_dump(mode="json") for h in current.maintenance_history]
    history.append(entry.model_dump(mode="json"))

    payload.update(
        last_modified_by=actor_id,
        updated_at=now.isoformat(),
        maintenance_history=history[-MAINTENANCE_HISTORY_LIMIT:],
    )

    rows = run_query(
        db_client.table(MAINTENANCE_TABLE).update(payload).eq("id", current.id),
        "update maintenance status"
    )
    if not rows:
        raise DatabaseError("Failed to update maintenance configuration", error_code="MAINTENANCE_UPDATE_ERROR")

    logger.info(f"Maintenance mode {action.value} by {actor_id} (mode={'ON' if update.is_maintenance_mode else 'OFF'})")
    return _parse(rows)


def build_status(config: MaintenanceConfig, user: Optional[Dict[str, Any]] = None) -> MaintenanceStatus:
    """Public status projection; ``canBypass`` is only true for a known caller"""
    role = user.get("role") if user else None
    return MaintenanceStatus(
        is_maintenance_mode=config.is_maintenance_mode,
        maintenance_type=config.maintenance_type,
        maintenance_message=config.maintenance_message,
        reason=config.reason,
        estimated_completion=config.estimated_completion,
        allowed_bypass_roles=config.allowed_bypass_roles,
        can_bypass=can_bypass_maintenance(role, config.allowed_bypass_roles),
    )


def get_history(db_client) -> List[MaintenanceHistoryEntry]:
    """Maintenance history, newest first"""
    config = get_current_config(db_client)
    return sorted(config.maintenance_history, key=lambda entry: entry.timestamp, reverse=True)


def clear_history(db_client, now: datetime) -> None:
    config = get_current_config(db_client)
    run_query(
        db_client.table(MAINTENANCE_TABLE)
        .update({"maintenance_history": [], "updated_at": as_utc(now).isoformat()})
        .eq("id", config.id),
        "clear maintenance history"
    )
    logger.info(f"Maintenance history cleared ({len(config.maintenance_history)} entries removed)")
