from __future__ import annotations

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from geoauthz.regions.catalog import canonical_region
from geoauthz.utils.clock import ensure_aware, utcnow


class RequestType(str, enum.Enum):
    ACCESS = "access"
    MODIFICATION = "modification"
    CREATION = "creation"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self != RequestStatus.PENDING


class RegionRequest(BaseModel):
    """A user's request for a permanent region assignment."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    region: str
    request_type: RequestType = RequestType.ACCESS
    reason: str = ""
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None

    @field_validator("region")
    @classmethod
    def _canonical_region(cls, v: str) -> str:
        return canonical_region(v)

    @field_validator("created_at", "updated_at", "reviewed_at")
    @classmethod
    def _aware(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v) if v is not None else None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
