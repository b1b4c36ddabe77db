"""Time-window rules deciding which announcements are visible right now.

Every function takes ``now`` explicitly; the HTTP layer obtains it from the
``utc_now`` dependency so tests can pin the clock.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

# How far ahead an announcement that has not started yet is already surfaced
UPCOMING_LOOKAHEAD = timedelta(hours=24)

# Maximum number of announcements returned to dashboards
VISIBLE_ANNOUNCEMENT_LIMIT = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_within_window(now: datetime, start: datetime, end: datetime) -> bool:
    return start <= now <= end


def is_upcoming(now: datetime, start: datetime, lookahead: timedelta = UPCOMING_LOOKAHEAD) -> bool:
    return now < start <= now + lookahead


def is_visible(announcement, now: datetime, role: Optional[str] = None) -> bool:
    """
    Check whether an announcement should be shown on dashboards.

    An announcement qualifies when it is switched on, meant for dashboards,
    targets the role (any role when ``role`` is None), and is either running
    now or starts within the lookahead horizon.
    """
    if not announcement.is_active or not announcement.show_on_dashboard:
        return False
    if role is not None and role not in announcement.target_roles:
        return False
    return (
        is_within_window(now, announcement.window_start, announcement.window_end)
        or is_upcoming(now, announcement.window_start)
    )


def select_visible(
    announcements: Iterable,
    now: datetime,
    role: Optional[str] = None,
    limit: int = VISIBLE_ANNOUNCEMENT_LIMIT
) -> List:
    """Filter, order by window start (soonest first) and cap the result.

    The cap is applied after sorting so the soonest announcements survive it.
    """
    visible = [a for a in announcements if is_visible(a, now, role)]
    visible.sort(key=lambda a: a.window_start)
    return visible[:limit]
