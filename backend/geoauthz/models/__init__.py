from geoauthz.models.activity import ActivityEntry
from geoauthz.models.grant import AccessLevel, GrantStatus, TemporaryAccessGrant, TimeRemaining
from geoauthz.models.group import Group
from geoauthz.models.region_request import RegionRequest, RequestStatus, RequestType
from geoauthz.models.user import DirectPermission, Role, UserAuthorizationProfile

__all__ = [
    "AccessLevel",
    "ActivityEntry",
    "DirectPermission",
    "GrantStatus",
    "Group",
    "RegionRequest",
    "RequestStatus",
    "RequestType",
    "Role",
    "TemporaryAccessGrant",
    "TimeRemaining",
    "UserAuthorizationProfile",
]
