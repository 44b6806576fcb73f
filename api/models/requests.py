# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints and domain service calls.
"""

import re
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from .base import CamelModel, UtcDatetime
from .enums import MediaType, ReviewAction, IssueReviewAction, TaskStatus

MONTH_PATTERN = re.compile(r'^(0[1-9]|1[0-2])/\d{4}$')


def _validate_month(v: str) -> str:
    if not MONTH_PATTERN.match(v):
        raise ValueError('Month must be in MM/YYYY format')
    return v


class LoginRequest(CamelModel):
    """Request model for the login challenge."""

    email: str = Field(..., min_length=3, description="Unit email")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class VerifyOtpRequest(CamelModel):
    """Request model for one-time code verification."""

    email: str = Field(..., min_length=3, description="Unit email")
    otp: str = Field(..., min_length=1, description="One-time code")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class MediaItemInput(CamelModel):
    """Evidence item supplied by a client."""

    id: Optional[str] = Field(None, description="Client-side identifier")
    type: MediaType = Field(default=MediaType.IMAGE, description="Media type")
    url: str = Field(..., min_length=1, description="Media URL or data URL")
    description: str = Field(default="", description="Caption")
    path: Optional[str] = Field(None, description="Remote storage path")


class CreateIssueRequest(CamelModel):
    """Request model for recording a violation."""

    ward_id: str = Field(..., min_length=1, description="Target ward unit ID")
    violation_code: str = Field(..., min_length=1, description="Violation catalog code")
    location_description: str = Field(default="", description="Location")
    penalty_points: float = Field(default=1, ge=0, description="Penalty points")
    source: str = Field(default="", description="Detection source")
    note: Optional[str] = Field(None, description="Free-form note")
    custom_name: Optional[str] = Field(None, description="Optional display name")
    evidence: List[MediaItemInput] = Field(default_factory=list, description="Creation-time evidence")


class UpdateIssueRequest(CamelModel):
    """Request model for editing descriptive issue fields."""

    custom_name: Optional[str] = Field(None, description="Display name")
    note: Optional[str] = Field(None, description="Free-form note")
    location_description: Optional[str] = Field(None, description="Location")
    source: Optional[str] = Field(None, description="Detection source")
    penalty_points: Optional[float] = Field(None, ge=0, description="Penalty points")
    change_reason: str = Field(default="", description="Reason for the edit")
    operator_name: str = Field(default="", description="Operator making the edit")

    def changes(self) -> dict:
        """Editable fields that were supplied."""
        return self.model_dump(
            exclude_none=True,
            exclude={'change_reason', 'operator_name'}
        )


class SubmitReportRequest(CamelModel):
    """Request model for a ward resolution report."""

    report_bbn: str = Field(default="", alias="reportBBN", description="Penalty record number")
    operator_name: str = Field(default="", description="Operator who handled the violation")
    report_content: Optional[str] = Field(None, description="Report text")
    evidence: List[MediaItemInput] = Field(default_factory=list, description="Post-resolution evidence")


class ReviewIssueRequest(CamelModel):
    """Request model for confirming or rejecting a resolved issue."""

    action: IssueReviewAction = Field(..., description="CONFIRM or REJECT")
    note: Optional[str] = Field(None, description="Reviewer note")


class CloseIssueRequest(CamelModel):
    """Request model for administratively closing an issue."""

    reason: str = Field(default="", description="Reason for closing")


class SubmitRegistrationRequest(CamelModel):
    """Request model for a ward registration."""

    points: float = Field(..., ge=0, description="Proposed total violation points")
    month: str = Field(..., description="Period in MM/YYYY")

    @field_validator('month')
    @classmethod
    def validate_month(cls, v):
        return _validate_month(v)


class ReviewDecisionRequest(CamelModel):
    """Request model for approving or rejecting a registration or bonus request."""

    action: ReviewAction = Field(..., description="APPROVE or REJECT")
    note: Optional[str] = Field(None, description="Reviewer note")


class SubmitBonusRequest(CamelModel):
    """Request model for a bonus request."""

    criteria_id: str = Field(..., min_length=1, description="Bonus criteria ID")
    requested_points: float = Field(..., gt=0, description="Requested points")
    description: str = Field(default="", description="Justification")
    month: str = Field(..., description="Period in MM/YYYY")
    evidence: Optional[str] = Field(None, description="Evidence link")

    @field_validator('month')
    @classmethod
    def validate_month(cls, v):
        return _validate_month(v)


class ArchiveRequest(CamelModel):
    """Request model for archiving old evidence payloads."""

    age_days: int = Field(default=30, ge=0, description="Archive issues older than this many days")


class IssueQuery(BaseModel):
    """Query parameters for listing issues."""

    ward_id: Optional[str] = Field(None, description="Filter by ward")
    status: Optional[TaskStatus] = Field(None, description="Filter by status")


class WardQuery(BaseModel):
    """Query parameters for ward-scoped listings."""

    ward_id: Optional[str] = Field(None, description="Filter by ward")


class TierPreviewQuery(BaseModel):
    """Query parameters for the area tier preview."""

    points: float = Field(..., ge=0, description="Violation points")


class IssuePath(BaseModel):
    issue_id: str = Field(..., description="Issue ID")


class RegistrationPath(BaseModel):
    registration_id: str = Field(..., description="Registration ID")


class BonusRequestPath(BaseModel):
    bonus_id: str = Field(..., description="Bonus request ID")


class UnitPath(BaseModel):
    unit_id: str = Field(..., description="Unit ID")


class AuditLogQuery(BaseModel):
    """Query parameters for the audit trail."""

    actor: Optional[str] = Field(None, description="Filter by acting unit ID")
    action: Optional[str] = Field(None, description="Filter by action name")
    target_id: Optional[str] = Field(None, description="Filter by affected entity ID")
    date_from: Optional[UtcDatetime] = Field(None, description="Earliest timestamp (ISO 8601)")
    date_to: Optional[UtcDatetime] = Field(None, description="Latest timestamp (ISO 8601)")
    limit: int = Field(default=100, ge=1, le=500, description="Maximum entries returned")
