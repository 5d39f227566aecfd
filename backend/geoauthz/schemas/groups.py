"""Pydantic schemas for the group registry."""

from pydantic import BaseModel, Field

from geoauthz.models.group import Group


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    permissions: list[str] = []
    assigned_regions: list[str] = []
    members: list[str] = []
    managers: list[str] = []


class GroupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    permissions: list[str] | None = None
    assigned_regions: list[str] | None = None
    managers: list[str] | None = None
    is_active: bool | None = None


class GroupListOut(BaseModel):
    items: list[Group]
    total: int
