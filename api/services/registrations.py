# SPDX-License-Identifier: Apache-2.0

"""
Ward registration workflow: submit, review and list.
"""

from datetime import datetime
from typing import Callable, List, Optional
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import WardRegistration, SessionContext
from models.enums import ReviewAction, RegistrationStatus
from models.requests import SubmitRegistrationRequest, ReviewDecisionRequest
from models.remote import SubmitRegistrationAction, ReviewRegistrationAction
from domain import reviews as review_domain
from domain.issues import next_stamped_id
from domain.scoring import area_tier, AreaTier
from middleware.error_handler import ValidationException, AuthorizationException
from services.store import LocalStore
from services.sync import SyncCoordinator
from services.audit import AuditService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class RegistrationService:
    """Wards propose their violation-point baseline; staff approve or reject."""

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

    def preview_tier(self, points: float) -> AreaTier:
        """Area tier a registration with ``points`` would be assigned."""
        return area_tier(points)

    def submit_registration(
        self,
        session: SessionContext,
        request: SubmitRegistrationRequest
    ) -> WardRegistration:
        """
        Submit a PENDING registration for the caller's ward.

        Raises:
            AuthorizationException: Caller is not a ward
        """
        if not session.is_ward():
            raise AuthorizationException("Only wards can submit registrations")

        with tracer.start_as_current_span("registrations.submit") as span:
            with self.store.transaction() as root:
                ward = root.users.get(session.unit_id)
                if ward is None:
                    raise ValidationException(f"Unknown ward: {session.unit_id}")

                now = self.clock()
                registration_id = next_stamped_id("REG", root.registrations.keys(), now)
                registration = review_domain.build_registration(ward, request, registration_id, now)
                root.registrations[registration.id] = registration
                self.audit.record(
                    root, session.unit_id, "SUBMIT_REGISTRATION", registration.id,
                    f"{request.points:g} points for {request.month}"
                )

            span.set_attributes({
                "registration.id": registration.id,
                "registration.proposed_coefficient": registration.proposed_coefficient
            })

        self.sync.push(SubmitRegistrationAction(payload=registration.to_document()))
        return registration

    def review_registration(
        self,
        session: SessionContext,
        registration_id: str,
        request: ReviewDecisionRequest
    ) -> Optional[WardRegistration]:
        """
        Approve or reject a pending registration.

        Approval updates the ward's points, coefficient and base score in the
        same transaction.
        """
        if not session.is_staff():
            raise AuthorizationException("Only admins and reviewers can review registrations")

        with tracer.start_as_current_span("registrations.review") as span:
            span.set_attributes({"registration.id": registration_id, "review.action": request.action})

            with self.store.transaction() as root:
                registration = root.registrations.get(registration_id)
                if registration is None:
                    return None
                if not registration.can_review():
                    raise ValidationException(
                        f"Registration {registration_id} is already {registration.status}"
                    )

                now = self.clock()
                review_domain.decide_registration(
                    registration, request.action, session.unit_id, request.note, now
                )
                if registration.status == RegistrationStatus.APPROVED:
                    unit = root.users.get(registration.ward_id)
                    if unit is not None:
                        review_domain.apply_registration_approval(unit, registration)
                    else:
                        logger.warning(
                            "Approved registration references unknown unit",
                            extra={"registration_id": registration_id, "ward_id": registration.ward_id}
                        )

                self.audit.record(
                    root, session.unit_id, f"REGISTRATION_{registration.status}", registration.id,
                    request.note or ""
                )

        self.sync.push(ReviewRegistrationAction(
            id=registration.id,
            review_action=request.action,
            note=request.note
        ))
        return registration

    def get_registration(self, registration_id: str) -> Optional[WardRegistration]:
        return self.store.get_store().registrations.get(registration_id)

    def list_registrations(
        self,
        session: Optional[SessionContext] = None,
        ward_id: Optional[str] = None
    ) -> List[WardRegistration]:
        """Registrations newest first; wards only see their own."""
        if session is not None and session.is_ward():
            ward_id = session.unit_id

        registrations = [
            registration for registration in self.store.get_store().registrations.values()
            if ward_id is None or registration.ward_id == ward_id
        ]
        return sorted(registrations, key=lambda r: r.created_at, reverse=True)
