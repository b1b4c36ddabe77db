"""Maintenance announcement store and dashboard visibility resolver."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from gradebook.core.exceptions import DatabaseError, NotFoundError, ValidationError
from gradebook.core.logging_config import get_logger
from gradebook.core.supabase_helpers import run_query
from gradebook.core.time_windows import UPCOMING_LOOKAHEAD, as_utc, select_visible
from gradebook.models.announcement import (
    HISTORY_NOTE_MAX_LENGTH,
    WINDOW_ORDER_MESSAGE,
    Announcement,
    AnnouncementCreate,
    AnnouncementUpdate,
    HistoryAction,
    HistoryEntry,
)

logger = get_logger(__name__)

ANNOUNCEMENTS_TABLE = "maintenance_announcements"
HISTORY_LIMIT = 10

# Recorded as changed whenever supplied, even if equal to the stored value
ALWAYS_RECORDED_FIELDS = {"target_roles", "affected_services"}


def append_history(
    history: List[Dict[str, Any]],
    action: HistoryAction,
    actor_id: str,
    timestamp: datetime,
    note: str = "",
    limit: int = HISTORY_LIMIT
) -> List[Dict[str, Any]]:
    """Return history with one entry appended, keeping only the newest ``limit`` entries."""
    entry = HistoryEntry(
        action=action,
        actor=actor_id,
        timestamp=timestamp,
        note=note[:HISTORY_NOTE_MAX_LENGTH],
    )
    return (list(history) + [entry.model_dump(mode="json")])[-limit:]


def ensure_window(start: datetime, end: datetime) -> None:
    if start >= end:
        raise ValidationError(
            WINDOW_ORDER_MESSAGE,
            error_code="INVALID_WINDOW",
            details={"scheduledStart": start.isoformat(), "scheduledEnd": end.isoformat()}
        )


def _to_store(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class AnnouncementWindowResolver:
    """Reads and mutates maintenance announcements in the store.

    ``now`` is always passed in by the caller; nothing here reads the clock.
    """

    def __init__(self, db_client):
        self.db = db_client

    def _table(self):
        return self.db.table(ANNOUNCEMENTS_TABLE)

    @staticmethod
    def _parse(rows: List[Dict[str, Any]]) -> List[Announcement]:
        return [Announcement.model_validate(row) for row in rows]

    def list_visible(self, now: datetime, role: Optional[str] = None) -> List[Announcement]:
        """
        Announcements a dashboard should show to ``role`` at ``now``.

        The store query narrows candidates using the indexed columns; the
        final membership, ordering and cap come from ``select_visible``.
        """
        now = as_utc(now)
        query = (
            self._table()
            .select("*")
            .eq("is_active", True)
            .eq("show_on_dashboard", True)
            .lte("window_start", (now + UPCOMING_LOOKAHEAD).isoformat())
            .gte("window_end", now.isoformat())
            .order("window_start")
        )
        rows = run_query(query, "fetch visible announcements")
        return select_visible(self._parse(rows), now, role or None)

    def list_all(self) -> List[Announcement]:
        """Every announcement, newest first, for management views."""
        rows = run_query(
            self._table().select("*").order("created_at", desc=True),
            "fetch announcements"
        )
        return self._parse(rows)

    def get_announcement(self, announcement_id: str) -> Announcement:
        rows = run_query(
            self._table().select("*").eq("id", announcement_id),
            "fetch announcement"
        )
        if not rows:
            raise NotFoundError(
                "Maintenance announcement not found",
                error_code="ANNOUNCEMENT_NOT_FOUND",
                details={"id": announcement_id}
            )
        return self._parse(rows)[0]

    def create_announcement(self, data: AnnouncementCreate, actor_id: str, now: datetime) -> Announcement:
        ensure_window(data.window_start, data.window_end)

        record = data.model_dump(mode="json")
        record.update(
            is_active=True,
            created_by=actor_id,
            last_modified_by=actor_id,
            history=append_history([], HistoryAction.CREATED, actor_id, as_utc(now), "Announcement created"),
        )

        rows = run_query(self._table().insert(record), "create announcement")
        if not rows:
            raise DatabaseError("Failed to create maintenance announcement", error_code="ANNOUNCEMENT_CREATE_ERROR")

        announcement = self._parse(rows)[0]
        logger.info(
            f"Announcement {announcement.id} created by {actor_id} "
            f"({announcement.window_start.isoformat()} -> {announcement.window_end.isoformat()})"
        )
        return announcement

    def update_announcement(
        self,
        announcement_id: str,
        changes: AnnouncementUpdate,
        actor_id: str,
        now: datetime
    ) -> Announcement:
        """
        Apply a partial update and record exactly one history entry.

        The window invariant is checked on the merged values, so an update
        that touches only unrelated fields still fails on a stored record
        whose window is broken. Nothing is written when validation fails.
        """
        supplied = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if not supplied:
            raise ValidationError("No update data provided", error_code="EMPTY_UPDATE")

        current = self.get_announcement(announcement_id)

        changed = {
            field: value
            for field, value in supplied.items()
            if field in ALWAYS_RECORDED_FIELDS or getattr(current, field) != value
        }

        ensure_window(
            changed.get("window_start", current.window_start),
            changed.get("window_end", current.window_end),
        )

        if "is_active" in changed:
            action = HistoryAction.ACTIVATED if changed["is_active"] else HistoryAction.DEACTIVATED
        else:
            action = HistoryAction.UPDATED

        changed_names = [AnnouncementUpdate.model_fields[field].alias or field for field in changed]
        note = f"Updated: {', '.join(changed_names)}" if changed_names else "Updated: no changes"

        payload = {field: _to_store(value) for field, value in changed.items()}
        payload.update(
            last_modified_by=actor_id,
            updated_at=as_utc(now).isoformat(),
            history=append_history(
                [entry.model_dump(mode="json") for entry in current.history],
                action,
                actor_id,
                as_utc(now),
                note,
            ),
        )

        rows = run_query(
            self._table().update(payload).eq("id", announcement_id),
            "update announcement"
        )
        if not rows:
            raise NotFoundError(
                "Maintenance announcement not found",
                error_code="ANNOUNCEMENT_NOT_FOUND",
                details={"id": announcement_id}
            )

        logger.info(f"Announcement {announcement_id} {action.value} by {actor_id} ({note})")
        return self._parse(rows)[0]

    def delete_announcement(self, announcement_id: str) -> None:
        rows = run_query(
            self._table().delete().eq("id", announcement_id),
            "delete announcement"
        )
        if not rows:
            raise NotFoundError(
                "Maintenance announcement not found",
                error_code="ANNOUNCEMENT_NOT_FOUND",
                details={"id": announcement_id}
            )
        logger.info(f"Announcement {announcement_id} deleted")
