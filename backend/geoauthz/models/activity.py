from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from geoauthz.utils.clock import utcnow


class ActivityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    actor_id: str
    action: str
    entity_type: str
    entity_id: str | None = None
    summary: str | None = None
    details: dict | None = None
    created_at: datetime = Field(default_factory=utcnow)
