"""Helper functions for populating response data with user information"""
from typing import Dict, Iterable, List, Optional

from gradebook.core.exceptions import StoreUnavailableError
from gradebook.core.logging_config import get_logger
from gradebook.core.supabase_helpers import run_query
from gradebook.models.announcement import Announcement, AnnouncementResponse
from gradebook.models.maintenance import MaintenanceConfig, MaintenanceConfigResponse
from gradebook.models.user import ActorRef

logger = get_logger(__name__)

PROFILE_FIELDS = "user_id, full_name, email, role"


def fetch_actor_profiles(db_client, actor_ids: Iterable[Optional[str]]) -> Dict[str, ActorRef]:
    """Fetch profile data for all given user ids in one query"""
    user_ids = sorted({actor_id for actor_id in actor_ids if actor_id})
    if not user_ids:
        return {}

    try:
        profiles = run_query(
            db_client.table("profiles").select(PROFILE_FIELDS).in_("user_id", user_ids),
            "load actor profiles"
        )
    except StoreUnavailableError:
        # Actor details are decorative; fall back to bare ids
        logger.warning(f"Could not load profiles for {len(user_ids)} actors, returning ids only")
        return {}

    return {
        str(p["user_id"]): ActorRef(
            id=str(p["user_id"]),
            full_name=p.get("full_name"),
            email=p.get("email"),
            role=p.get("role"),
        )
        for p in profiles
    }


def _actor(actor_id: Optional[str], profiles: Dict[str, ActorRef]) -> Optional[ActorRef]:
    if actor_id is None:
        return None
    return profiles.get(actor_id) or ActorRef(id=actor_id)


def populate_announcements(announcements: List[Announcement], db_client) -> List[AnnouncementResponse]:
    """Replace actor ids on announcements (and their history) with actor references"""
    actor_ids = set()
    for announcement in announcements:
        actor_ids.add(announcement.created_by)
        actor_ids.add(announcement.last_modified_by)
        actor_ids.update(entry.actor for entry in announcement.history)
    profiles = fetch_actor_profiles(db_client, actor_ids)

    populated = []
    for announcement in announcements:
        data = announcement.model_dump()
        data["created_by"] = _actor(announcement.created_by, profiles)
        data["last_modified_by"] = _actor(announcement.last_modified_by, profiles)
        data["history"] = [
            {**entry, "actor": _actor(entry["actor"], profiles)} for entry in data["history"]
        ]
        populated.append(AnnouncementResponse.model_validate(data))
    return populated


def populate_announcement(announcement: Announcement, db_client) -> AnnouncementResponse:
    return populate_announcements([announcement], db_client)[0]


def populate_maintenance_config(config: MaintenanceConfig, db_client) -> MaintenanceConfigResponse:
    """Populate the last modifier and history actors of the maintenance config"""
    actor_ids = {config.last_modified_by}
    actor_ids.update(entry.actor for entry in config.maintenance_history)
    profiles = fetch_actor_profiles(db_client, actor_ids)

    data = config.model_dump()
    data["last_modified_by"] = _actor(config.last_modified_by, profiles)
    data["maintenance_history"] = [
        {**entry, "actor": _actor(entry["actor"], profiles)} for entry in data["maintenance_history"]
    ]
    return MaintenanceConfigResponse.model_validate(data)
