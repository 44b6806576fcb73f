# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the ward compliance tracker.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .base import CamelModel, UtcDatetime, utc_now
from .enums import (
    Role,
    TaskStatus,
    RegistrationStatus,
    BonusStatus,
    ScoringType,
    ViolationGroup,
    MediaType
)


TERMINAL_STATUSES = (TaskStatus.CONFIRMED, TaskStatus.CLOSED)


class Unit(CamelModel):
    """Administrative or ward account tracked for compliance scoring."""

    id: str = Field(..., description="Unit identifier")
    email: str = Field(..., description="Login email, matched case-insensitively")
    role: Role = Field(..., description="Unit role")
    unit_name: str = Field(..., min_length=1, description="Display name")
    phone_number: Optional[str] = Field(None, description="Contact phone")
    area_coefficient: int = Field(default=1, ge=1, le=4, description="Area complexity coefficient")
    base_score: float = Field(..., gt=0, description="Base complexity score")
    total_violation_points: Optional[float] = Field(
        None, ge=0, description="Cumulative violation points (ward units only)"
    )

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Strip surrounding whitespace from the email."""
        if not v.strip():
            raise ValueError('Email cannot be empty')
        return v.strip()

    def is_ward(self) -> bool:
        return self.role == Role.WARD

    def is_staff(self) -> bool:
        """Check if the unit can create and review issues."""
        return self.role in (Role.ADMIN, Role.REVIEWER)


class MediaItem(CamelModel):
    """Evidence attachment."""

    id: str = Field(..., description="Media identifier")
    type: MediaType = Field(default=MediaType.IMAGE, description="Media type")
    url: str = Field(default="", description="Media URL or data URL")
    description: str = Field(default="", description="Caption")
    path: Optional[str] = Field(None, description="Remote storage path")
    archived: bool = Field(default=False, description="Whether the payload was reduced by archiving")
    original_size: Optional[int] = Field(None, description="Payload size before archiving")
    digest: Optional[str] = Field(None, description="SHA-256 of the archived payload")


class IssueVersion(CamelModel):
    """Snapshot of the fields changed by one issue mutation."""

    version_id: str = Field(..., description="Version identifier")
    updated_at: UtcDatetime = Field(default_factory=utc_now, description="Change timestamp")
    updated_by: str = Field(..., description="Unit ID that made the change")
    operator_name: str = Field(default="", description="Operator who made the change")
    change_reason: str = Field(default="", description="Reason for the change")
    data_snapshot: Dict[str, Any] = Field(default_factory=dict, description="Changed fields")


class Issue(CamelModel):
    """Recorded violation moving through the SLA review workflow."""

    id: str = Field(..., description="Issue identifier, sortable by creation time")
    custom_name: Optional[str] = Field(None, description="Optional display name")
    created_time: UtcDatetime = Field(..., description="Creation timestamp")
    deadline_time: UtcDatetime = Field(..., description="SLA deadline (creation + 45 minutes)")
    ward_id: str = Field(..., description="Owning ward unit ID")
    ward_name: str = Field(default="", description="Owning ward name")
    location_description: str = Field(default="", description="Where the violation was observed")
    violation_code: str = Field(..., description="Violation catalog code")
    penalty_points: float = Field(default=1, ge=0, description="Penalty points")
    source: str = Field(default="", description="How the violation was detected")
    note: Optional[str] = Field(None, description="Free-form note")
    evidence: List[MediaItem] = Field(default_factory=list, description="Creation-time evidence")
    report_content: Optional[str] = Field(None, description="Ward resolution report")
    report_bbn: Optional[str] = Field(None, alias="reportBBN", description="Penalty record number")
    report_time: Optional[UtcDatetime] = Field(None, description="Report submission time")
    resolved_time: Optional[UtcDatetime] = Field(None, description="Time the issue reached RESOLVED")
    report_evidence: List[MediaItem] = Field(default_factory=list, description="Resolution evidence")
    status: TaskStatus = Field(default=TaskStatus.NEW, description="Workflow status")
    versions: List[IssueVersion] = Field(default_factory=list, description="Change history")

    def is_terminal(self) -> bool:
        """Check if no further transitions are allowed."""
        return self.status in TERMINAL_STATUSES

    def sort_key(self) -> int:
        """Numeric creation stamp embedded in the id."""
        suffix = self.id.rsplit('_', 1)[-1]
        return int(suffix) if suffix.isdigit() else 0


class WardRegistration(CamelModel):
    """Ward proposal of its violation-point baseline."""

    id: str = Field(..., description="Registration identifier")
    ward_id: str = Field(..., description="Ward unit ID")
    ward_name: str = Field(default="", description="Ward name")
    month: str = Field(default="", description="Period in MM/YYYY")
    points: float = Field(..., ge=0, description="Proposed total violation points")
    proposed_coefficient: int = Field(..., ge=1, le=4, description="Area tier of the proposed points")
    status: RegistrationStatus = Field(default=RegistrationStatus.PENDING, description="Review status")
    created_at: UtcDatetime = Field(default_factory=utc_now, description="Submission time")
    approved_at: Optional[UtcDatetime] = Field(None, description="Approval time")
    reviewed_by: Optional[str] = Field(None, description="Reviewer unit ID")
    note: Optional[str] = Field(None, description="Reviewer note")

    def can_review(self) -> bool:
        return self.status == RegistrationStatus.PENDING


class BonusCriteria(CamelModel):
    """Entry of the fixed bonus criteria catalog."""

    id: str
    content: str
    max_points: float
    is_fixed: bool


class BonusRequest(CamelModel):
    """Ward proposal for a discretionary score bonus."""

    id: str = Field(..., description="Bonus request identifier")
    ward_id: str = Field(..., description="Ward unit ID")
    ward_name: str = Field(default="", description="Ward name")
    month: str = Field(default="", description="Period in MM/YYYY")
    criteria_id: str = Field(..., description="Bonus criteria ID")
    criteria_content: str = Field(default="", description="Criteria text at submission time")
    requested_points: float = Field(..., ge=0, description="Requested bonus points")
    description: str = Field(default="", description="Justification")
    evidence: Optional[str] = Field(None, description="Evidence link")
    status: BonusStatus = Field(default=BonusStatus.PENDING, description="Review status")
    created_at: UtcDatetime = Field(default_factory=utc_now, description="Submission time")
    reviewed_by: Optional[str] = Field(None, description="Reviewer unit ID")
    reviewed_at: Optional[UtcDatetime] = Field(None, description="Review time")
    reviewer_note: Optional[str] = Field(None, description="Reviewer note")
    final_points: Optional[float] = Field(None, description="Granted points, set only on approval")

    def can_review(self) -> bool:
        return self.status == BonusStatus.PENDING


class AuditLog(CamelModel):
    """Append-only audit trail entry."""

    id: str = Field(..., description="Log entry ID")
    timestamp: UtcDatetime = Field(default_factory=utc_now, description="Action timestamp")
    actor: str = Field(..., description="Unit ID or email that performed the action")
    action: str = Field(..., description="Action name")
    target_id: str = Field(..., description="Affected entity ID")
    details: str = Field(default="", description="Human-readable details")


class SessionRecord(CamelModel):
    """Issued login session."""

    token_id: str = Field(..., description="Token identifier (jti)")
    unit_id: str = Field(..., description="Logged-in unit ID")
    email: str = Field(..., description="Logged-in email")
    issued_at: UtcDatetime = Field(default_factory=utc_now, description="Issue time")
    expires_at: Optional[UtcDatetime] = Field(None, description="Expiry time")


class StoreMeta(CamelModel):
    """Metadata of the store root."""

    created_at: UtcDatetime = Field(default_factory=utc_now)
    last_updated: UtcDatetime = Field(default_factory=utc_now)
    is_persistent: bool = Field(default=False)
    schema_version: int = Field(default=1)
    revision: int = Field(default=0)


class StoreRoot(CamelModel):
    """Single aggregate holding every entity collection, keyed by id."""

    users: Dict[str, Unit] = Field(default_factory=dict)
    issues: Dict[str, Issue] = Field(default_factory=dict)
    registrations: Dict[str, WardRegistration] = Field(default_factory=dict)
    bonus_requests: Dict[str, BonusRequest] = Field(default_factory=dict)
    logs: List[AuditLog] = Field(default_factory=list)
    sessions: Dict[str, SessionRecord] = Field(default_factory=dict)
    last_session_id: Optional[str] = Field(None)
    meta: StoreMeta = Field(default_factory=StoreMeta)

    def find_unit_by_email(self, email: str) -> Optional[Unit]:
        """Look up a unit by email, ignoring case."""
        needle = email.strip().lower()
        for unit in self.users.values():
            if unit.email.lower() == needle:
                return unit
        return None


class ViolationCode(CamelModel):
    """Entry of the violation code catalog."""

    code: str
    group: ViolationGroup
    name: str
    legal_basis: str
    scoring_type: ScoringType
    direct_deduction_factor: Optional[float] = None
    active: bool = True


class SessionContext(BaseModel):
    """Logged-in unit passed explicitly into domain service calls."""

    model_config = ConfigDict(use_enum_values=True)

    unit_id: str = Field(..., description="Logged-in unit ID")
    email: str = Field(..., description="Logged-in email")
    role: Role = Field(..., description="Unit role")
    unit_name: str = Field(default="", description="Unit display name")
    token_id: Optional[str] = Field(None, description="Session token identifier")

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    def is_ward(self) -> bool:
        return self.role == Role.WARD

    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.REVIEWER)

    @classmethod
    def for_unit(cls, unit: Unit, token_id: Optional[str] = None) -> "SessionContext":
        """Build a session context for a unit."""
        return cls(
            unit_id=unit.id,
            email=unit.email,
            role=unit.role,
            unit_name=unit.unit_name,
            token_id=token_id
        )
