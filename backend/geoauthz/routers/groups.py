"""Group registry endpoints.

Endpoints:
    GET    /api/groups                              List groups
    POST   /api/groups                              Create group
    GET    /api/groups/{group_id}                   Group detail
    PATCH  /api/groups/{group_id}                   Edit group
    DELETE /api/groups/{group_id}                   Delete group
    POST   /api/groups/{group_id}/members/{user_id} Add member
    DELETE /api/groups/{group_id}/members/{user_id} Remove member
"""

from fastapi import APIRouter, Depends, Query, status

from geoauthz.auth.deps import get_engine, require_permission
from geoauthz.engine import AuthorizationEngine
from geoauthz.errors import NotFoundError
from geoauthz.models.group import Group
from geoauthz.models.user import UserAuthorizationProfile
from geoauthz.schemas.groups import GroupCreate, GroupListOut, GroupUpdate

router = APIRouter()


@router.get("", response_model=GroupListOut)
async def list_groups(
    include_inactive: bool = Query(default=True),
    _: UserAuthorizationProfile = Depends(require_permission("groups.view")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    items = engine.groups.list_groups(include_inactive=include_inactive)
    return GroupListOut(items=items, total=len(items))


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupCreate,
    user: UserAuthorizationProfile = Depends(require_permission("groups.create")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    outcome = await engine.groups.create(
        body.name,
        user.user_id,
        description=body.description,
        permissions=body.permissions,
        assigned_regions=body.assigned_regions,
        members=body.members,
        managers=body.managers,
    )
    return outcome.unwrap()


@router.get("/{group_id}", response_model=Group)
async def get_group(
    group_id: str,
    _: UserAuthorizationProfile = Depends(require_permission("groups.view")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    group = engine.groups.get(group_id)
    if group is None:
        raise NotFoundError("Group", group_id)
    return group


@router.patch("/{group_id}", response_model=Group)
async def update_group(
    group_id: str,
    body: GroupUpdate,
    user: UserAuthorizationProfile = Depends(require_permission("groups.edit")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    changes = body.model_dump(exclude_unset=True)
    return (await engine.groups.update(group_id, user.user_id, **changes)).unwrap()


@router.delete("/{group_id}", response_model=Group)
async def delete_group(
    group_id: str,
    user: UserAuthorizationProfile = Depends(require_permission("groups.delete")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return (await engine.groups.delete(group_id, user.user_id)).unwrap()


@router.post("/{group_id}/members/{user_id}", response_model=Group)
async def add_member(
    group_id: str,
    user_id: str,
    actor: UserAuthorizationProfile = Depends(require_permission("users.assign_groups")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return (await engine.groups.add_member(group_id, user_id, actor.user_id)).unwrap()


@router.delete("/{group_id}/members/{user_id}", response_model=Group)
async def remove_member(
    group_id: str,
    user_id: str,
    actor: UserAuthorizationProfile = Depends(require_permission("users.assign_groups")),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return (await engine.groups.remove_member(group_id, user_id, actor.user_id)).unwrap()
