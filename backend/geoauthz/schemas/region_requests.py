"""Pydantic schemas for region requests."""

from pydantic import BaseModel, Field

from geoauthz.models.region_request import RegionRequest, RequestType


class RegionRequestCreate(BaseModel):
    region: str = Field(min_length=1)
    request_type: RequestType = RequestType.ACCESS
    reason: str = ""


class ReviewIn(BaseModel):
    notes: str | None = None


class RegionRequestListOut(BaseModel):
    items: list[RegionRequest]
    total: int
