"""Pydantic schemas for the decision endpoint and permission views."""

from pydantic import BaseModel

from geoauthz.auth.decision import Target
from geoauthz.auth.permissions import Permission


class AuthorizeRequest(BaseModel):
    action: str
    target: Target | None = None
    # Admin/Manager may evaluate on behalf of another user
    user_id: str | None = None


class DecisionOut(BaseModel):
    user_id: str
    action: str
    allowed: bool
    reason: str | None = None
    region: str | None = None


class PermissionCatalogOut(BaseModel):
    items: list[Permission]
    total: int


class RolePermissionsOut(BaseModel):
    role: str
    permissions: list[str]


class MyPermissionsOut(BaseModel):
    user_id: str
    role: str
    direct: list[str]
    from_groups: list[str]
    all: list[str]
    regions: list[str]
