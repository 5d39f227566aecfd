"""Region request workflow: pending -> approved | rejected | cancelled.

Every non-pending status is terminal.  Approval adds the region to the
requester's assigned regions in the same step as the status change: both
records are persisted with a single ``save_approval`` call and then swapped
into the arena together.
"""

from __future__ import annotations

import logging
from collections import Counter

from pydantic import BaseModel

from geoauthz.errors import (
    AccessDeniedError,
    DuplicatePendingError,
    InvalidStateError,
    InvalidValueError,
    NotFoundError,
    Outcome,
)
from geoauthz.models.region_request import RegionRequest, RequestStatus, RequestType
from geoauthz.regions.catalog import canonical_region
from geoauthz.services.state import AuthzState, serialized
from geoauthz.utils.activity import log_activity

logger = logging.getLogger(__name__)


class RequestStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    by_region: dict[str, int]


class RegionRequestWorkflow:
    def __init__(self, state: AuthzState):
        self.state = state

    # ── Reads ────────────────────────────────────────────────

    def get(self, request_id: str) -> RegionRequest | None:
        return self.state.requests.get(request_id)

    def has_pending(self, user_id: str, region: str) -> bool:
        region = canonical_region(region)
        return any(
            r.user_id == user_id and r.region == region and r.is_pending
            for r in self.state.requests.values()
        )

    def list_requests(
        self,
        *,
        user_id: str | None = None,
        status: RequestStatus | str | None = None,
        region: str | None = None,
    ) -> list[RegionRequest]:
        """Filtered view, newest first."""
        wanted_status = RequestStatus(status) if status else None
        wanted_region = canonical_region(region) if region else None
        result = [
            r for r in self.state.requests.values()
            if (not user_id or r.user_id == user_id)
            and (not wanted_status or r.status == wanted_status)
            and (not wanted_region or r.region == wanted_region)
        ]
        return sorted(result, key=lambda r: r.created_at, reverse=True)

    def stats(self) -> RequestStats:
        by_status = Counter(r.status for r in self.state.requests.values())
        return RequestStats(
            total=len(self.state.requests),
            pending=by_status[RequestStatus.PENDING],
            approved=by_status[RequestStatus.APPROVED],
            rejected=by_status[RequestStatus.REJECTED],
            cancelled=by_status[RequestStatus.CANCELLED],
            by_region=dict(Counter(r.region for r in self.state.requests.values())),
        )

    # ── Mutations ────────────────────────────────────────────

    @serialized
    async def create(
        self,
        user_id: str,
        region: str,
        request_type: RequestType | str = RequestType.ACCESS,
        reason: str = "",
    ) -> Outcome[RegionRequest]:
        try:
            request_type = RequestType(request_type)
        except ValueError:
            return Outcome.failure(
                InvalidValueError("request_type", request_type, [t.value for t in RequestType])
            )
        region = canonical_region(region)
        if self.has_pending(user_id, region):
            return Outcome.failure(DuplicatePendingError(user_id, region))

        now = self.state.now()
        request = await self.state.put_request(
            RegionRequest(
                user_id=user_id,
                region=region,
                request_type=request_type,
                reason=reason,
                created_at=now,
                updated_at=now,
            )
        )
        await log_activity(
            self.state.store, user_id,
            action="requested", entity_type="region_request", entity_id=request.id,
            summary=f"Requested {request.request_type.value} for {region}",
        )
        logger.info("Region request %s created: %s -> %s", request.id, user_id, region)
        return Outcome.success(request)

    def _pending(self, request_id: str) -> Outcome[RegionRequest]:
        request = self.state.requests.get(request_id)
        if request is None:
            return Outcome.failure(NotFoundError("Region request", request_id))
        if not request.is_pending:
            return Outcome.failure(
                InvalidStateError(f"Region request {request_id} is already {request.status.value}")
            )
        return Outcome.success(request)

    def _reviewed(
        self, request: RegionRequest, status: RequestStatus, reviewer_id: str, notes: str | None
    ) -> RegionRequest:
        now = self.state.now()
        return request.model_copy(
            update={
                "status": status,
                "reviewed_by": reviewer_id,
                "reviewed_at": now,
                "review_notes": notes,
                "updated_at": now,
            }
        )

    @serialized
    async def approve(
        self, request_id: str, reviewer_id: str, notes: str | None = None
    ) -> Outcome[RegionRequest]:
        found = self._pending(request_id)
        if not found.ok:
            return found
        request = found.value

        approved = self._reviewed(request, RequestStatus.APPROVED, reviewer_id, notes)
        profile = self.state.profile_or_default(request.user_id).with_region(request.region)

        await self.state.store.save_approval(approved, profile)
        # Both records change together, with no await in between
        self.state.requests[request_id] = approved
        self.state.profiles[profile.user_id] = profile

        await log_activity(
            self.state.store, reviewer_id,
            action="approved", entity_type="region_request", entity_id=request_id,
            summary=f"Approved {request.region} for {request.user_id}",
        )
        logger.info("Region request %s approved by %s", request_id, reviewer_id)
        return Outcome.success(approved)

    @serialized
    async def reject(
        self, request_id: str, reviewer_id: str, notes: str | None = None
    ) -> Outcome[RegionRequest]:
        found = self._pending(request_id)
        if not found.ok:
            return found

        rejected = await self.state.put_request(
            self._reviewed(found.value, RequestStatus.REJECTED, reviewer_id, notes)
        )
        await log_activity(
            self.state.store, reviewer_id,
            action="rejected", entity_type="region_request", entity_id=request_id,
            summary=f"Rejected {rejected.region} for {rejected.user_id}",
        )
        logger.info("Region request %s rejected by %s", request_id, reviewer_id)
        return Outcome.success(rejected)

    @serialized
    async def cancel(self, request_id: str, user_id: str) -> Outcome[RegionRequest]:
        """Withdraw a pending request.  Only the requester may cancel."""
        found = self._pending(request_id)
        if not found.ok:
            return found
        request = found.value
        if request.user_id != user_id:
            return Outcome.failure(AccessDeniedError("Only the requester can cancel a request"))

        cancelled = await self.state.put_request(
            request.model_copy(
                update={"status": RequestStatus.CANCELLED, "updated_at": self.state.now()}
            )
        )
        await log_activity(
            self.state.store, user_id,
            action="cancelled", entity_type="region_request", entity_id=request_id,
        )
        logger.info("Region request %s cancelled", request_id)
        return Outcome.success(cancelled)
