# SPDX-License-Identifier: Apache-2.0

"""
Bonus request workflow: submit, review and list.
"""

from datetime import datetime
from typing import Callable, List, Optional
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import BonusRequest, BonusCriteria, SessionContext
from models.requests import SubmitBonusRequest, ReviewDecisionRequest
from models.remote import SubmitBonusRequestAction, ReviewBonusRequestAction
from domain import reviews as review_domain
from domain.catalog import BONUS_CRITERIA, get_bonus_criteria
from domain.issues import next_stamped_id
from middleware.error_handler import ValidationException, AuthorizationException
from services.store import LocalStore
from services.sync import SyncCoordinator
from services.audit import AuditService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class BonusService:
    """Wards request discretionary bonus points; staff approve or reject."""

    def __init__(
        self,
        store: LocalStore,
        sync: SyncCoordinator,
        audit: AuditService,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.sync = sync
        self.audit = audit
        self.clock = clock

    def list_criteria(self) -> List[BonusCriteria]:
        return list(BONUS_CRITERIA)

    def submit_bonus_request(self, session: SessionContext, request: SubmitBonusRequest) -> BonusRequest:
        """
        Submit a PENDING bonus request for the caller's ward.

        Raises:
            AuthorizationException: Caller is not a ward
            ValidationException: Unknown criteria or wrong amount for a fixed criteria
        """
        if not session.is_ward():
            raise AuthorizationException("Only wards can submit bonus requests")

        criteria = get_bonus_criteria(request.criteria_id)
        validation = review_domain.validate_bonus_request(request, criteria)
        if not validation.is_valid:
            raise ValidationException("Invalid bonus request", validation.errors)

        with tracer.start_as_current_span("bonuses.submit") as span:
            with self.store.transaction() as root:
                ward = root.users.get(session.unit_id)
                if ward is None:
                    raise ValidationException(f"Unknown ward: {session.unit_id}")

                now = self.clock()
                bonus_id = next_stamped_id("BONUS", root.bonus_requests.keys(), now)
                bonus = review_domain.build_bonus_request(ward, request, criteria, bonus_id, now)
                root.bonus_requests[bonus.id] = bonus
                self.audit.record(
                    root, session.unit_id, "SUBMIT_BONUS", bonus.id,
                    f"{criteria.id}: {request.requested_points:g} points"
                )

            span.set_attributes({"bonus.id": bonus.id, "bonus.criteria_id": criteria.id})

        if validation.warnings:
            logger.info("Bonus request submitted with warnings", extra={"bonus_id": bonus.id, "warnings": validation.warnings})

        self.sync.push(SubmitBonusRequestAction(payload=bonus.to_document()))
        return bonus

    def review_bonus_request(
        self,
        session: SessionContext,
        bonus_id: str,
        request: ReviewDecisionRequest
    ) -> Optional[BonusRequest]:
        """Approve (granting the requested points) or reject a pending bonus request."""
        if not session.is_staff():
            raise AuthorizationException("Only admins and reviewers can review bonus requests")

        with tracer.start_as_current_span("bonuses.review") as span:
            span.set_attributes({"bonus.id": bonus_id, "review.action": request.action})

            with self.store.transaction() as root:
                bonus = root.bonus_requests.get(bonus_id)
                if bonus is None:
                    return None
                if not bonus.can_review():
                    raise ValidationException(f"Bonus request {bonus_id} is already {bonus.status}")

                review_domain.decide_bonus(bonus, request.action, session.unit_id, request.note, self.clock())
                self.audit.record(
                    root, session.unit_id, f"BONUS_{bonus.status}", bonus.id, request.note or ""
                )

        self.sync.push(ReviewBonusRequestAction(
            id=bonus.id,
            review_action=request.action,
            note=request.note
        ))
        return bonus

    def get_bonus_request(self, bonus_id: str) -> Optional[BonusRequest]:
        return self.store.get_store().bonus_requests.get(bonus_id)

    def list_bonus_requests(
        self,
        session: Optional[SessionContext] = None,
        ward_id: Optional[str] = None
    ) -> List[BonusRequest]:
        """Bonus requests newest first; wards only see their own."""
        if session is not None and session.is_ward():
            ward_id = session.unit_id

        requests = [
            bonus for bonus in self.store.get_store().bonus_requests.values()
            if ward_id is None or bonus.ward_id == ward_id
        ]
        return sorted(requests, key=lambda b: b.created_at, reverse=True)
