# SPDX-License-Identifier: Apache-2.0

"""
Registration and bonus request review logic.

Pure functions building, validating and deciding ward registrations and
bonus requests. Unit updates on registration approval go through
``apply_registration_approval`` only, whether the approval happened
locally or arrived with a pulled snapshot.
"""

from datetime import datetime
from typing import Optional

from models.entities import Unit, WardRegistration, BonusRequest, BonusCriteria
from models.enums import RegistrationStatus, BonusStatus, ReviewAction
from models.requests import SubmitRegistrationRequest, SubmitBonusRequest
from domain.issues import ValidationResult
from domain.scoring import area_tier


def build_registration(
    ward: Unit,
    request: SubmitRegistrationRequest,
    registration_id: str,
    now: datetime
) -> WardRegistration:
    """Create a PENDING registration with its proposed area tier."""
    tier = area_tier(request.points)
    return WardRegistration(
        id=registration_id,
        ward_id=ward.id,
        ward_name=ward.unit_name,
        month=request.month,
        points=request.points,
        proposed_coefficient=tier.coefficient,
        status=RegistrationStatus.PENDING,
        created_at=now
    )


def apply_registration_approval(unit: Unit, registration: WardRegistration) -> Unit:
    """
    Update a unit to match an approved registration.

    Points, coefficient and base score are all derived from the
    registration points through the area tier function.
    """
    tier = area_tier(registration.points)
    unit.total_violation_points = registration.points
    unit.area_coefficient = tier.coefficient
    unit.base_score = tier.base_score
    return unit


def decide_registration(
    registration: WardRegistration,
    action: ReviewAction,
    reviewer_id: str,
    note: Optional[str],
    now: datetime
) -> WardRegistration:
    """Record an approve/reject decision on a pending registration."""
    if action == ReviewAction.APPROVE:
        registration.status = RegistrationStatus.APPROVED
        registration.approved_at = now
    else:
        registration.status = RegistrationStatus.REJECTED
    registration.reviewed_by = reviewer_id
    registration.note = note
    return registration


def validate_bonus_request(
    request: SubmitBonusRequest,
    criteria: Optional[BonusCriteria]
) -> ValidationResult:
    """
    Validate a bonus request against the criteria catalog.

    Fixed criteria must request exactly their maximum; open criteria accept
    any positive amount.
    """
    errors = []
    warnings = []

    if criteria is None:
        errors.append(f"Unknown bonus criteria: {request.criteria_id}")
    elif criteria.is_fixed and request.requested_points != criteria.max_points:
        errors.append(
            f"Criteria {criteria.id} is fixed at {criteria.max_points:g} points"
        )
    elif not criteria.is_fixed and request.requested_points > criteria.max_points:
        warnings.append(
            f"Requested points exceed the per-item amount of {criteria.max_points:g}"
        )

    if request.requested_points <= 0:
        errors.append("Requested points must be positive")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def build_bonus_request(
    ward: Unit,
    request: SubmitBonusRequest,
    criteria: BonusCriteria,
    bonus_id: str,
    now: datetime
) -> BonusRequest:
    return BonusRequest(
        id=bonus_id,
        ward_id=ward.id,
        ward_name=ward.unit_name,
        month=request.month,
        criteria_id=criteria.id,
        criteria_content=criteria.content,
        requested_points=request.requested_points,
        description=request.description,
        evidence=request.evidence,
        status=BonusStatus.PENDING,
        created_at=now
    )


def decide_bonus(
    bonus: BonusRequest,
    action: ReviewAction,
    reviewer_id: str,
    note: Optional[str],
    now: datetime
) -> BonusRequest:
    """Record a decision; ``final_points`` is only ever set on approval."""
    if action == ReviewAction.APPROVE:
        bonus.status = BonusStatus.APPROVED
        bonus.final_points = bonus.requested_points
    else:
        bonus.status = BonusStatus.REJECTED
        bonus.final_points = None
    bonus.reviewed_by = reviewer_id
    bonus.reviewed_at = now
    bonus.reviewer_note = note
    return bonus
