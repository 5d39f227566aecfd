"""Domain error taxonomy.

Mutations in the grant ledger, region-request workflow and group registry
return an ``Outcome`` instead of raising, so administrative callers can show
the failure without crashing.  ``Outcome.unwrap()`` converts back to an
exception for callers (the HTTP layer) that prefer raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import status

T = TypeVar("T")


class GeoAuthzError(Exception):
    """Base exception for authorization engine errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class InvalidRangeError(GeoAuthzError):
    """An expiry that is not in the future."""

    def __init__(self, message: str = "expires_at must be in the future"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_RANGE",
        )


class NotFoundError(GeoAuthzError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details={"resource": resource, "id": identifier},
        )


class DuplicatePendingError(GeoAuthzError):
    def __init__(self, user_id: str, region: str):
        super().__init__(
            message=f"User {user_id} already has a pending request for {region}",
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_PENDING",
            details={"user_id": user_id, "region": region},
        )


class DuplicateGrantError(GeoAuthzError):
    def __init__(self, user_id: str, region: str):
        super().__init__(
            message=f"User {user_id} already has active temporary access to {region}",
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_GRANT",
            details={"user_id": user_id, "region": region},
        )


class InvalidValueError(GeoAuthzError):
    """A field value outside its allowed set, e.g. an unknown request type."""

    def __init__(self, field: str, value: object, allowed: list[str] | None = None):
        super().__init__(
            message=f"Invalid {field}: {value!r}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_VALUE",
            details={"field": field, "allowed": allowed} if allowed else {"field": field},
        )


class InvalidStateError(GeoAuthzError):
    """A transition from a state that does not allow it."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="INVALID_STATE",
        )


class InvalidPermissionError(GeoAuthzError):
    def __init__(self, permission_ids: list[str]):
        self.permission_ids = permission_ids
        super().__init__(
            message=f"Unknown permission(s): {', '.join(permission_ids)}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_PERMISSION",
            details={"permission_ids": list(permission_ids)},
        )


class AccessDeniedError(GeoAuthzError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="ACCESS_DENIED",
        )


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Typed result of a mutation: either ``value`` or ``error`` is set."""
    value: T | None = None
    error: GeoAuthzError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: GeoAuthzError) -> Outcome[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
