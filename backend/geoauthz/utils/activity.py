"""Records one entry on the activity trail for an administrative change.

Usage:
    await log_activity(
        store, reviewer_id, action="approved", entity_type="region_request",
        entity_id=request.id, summary="Approved Kerala for U3",
    )
"""

from __future__ import annotations

from geoauthz.models.activity import ActivityEntry
from geoauthz.store.base import AuthzStore


async def log_activity(
    store: AuthzStore,
    actor_id: str,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> ActivityEntry:
    """Append an activity entry to the store and return it."""
    entry = ActivityEntry(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        summary=summary,
        details=details,
    )
    await store.append_activity(entry)
    return entry
