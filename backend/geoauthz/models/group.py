from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from geoauthz.regions.catalog import canonical_region
from geoauthz.utils.clock import ensure_aware, utcnow


class Group(BaseModel):
    """A named bundle of permissions and regions shared by its members."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str | None = None
    permissions: frozenset[str] = frozenset()
    assigned_regions: frozenset[str] = frozenset()
    members: frozenset[str] = frozenset()
    managers: frozenset[str] = frozenset()
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("assigned_regions", mode="before")
    @classmethod
    def _canonical_regions(cls, v):
        if v is None:
            return frozenset()
        return frozenset(canonical_region(r) for r in v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)
