# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the ward compliance tracker.
"""

# Base models
from .base import CamelModel, utc_now, epoch_ms

# Enumerations
from .enums import (
    Role,
    TaskStatus,
    RegistrationStatus,
    BonusStatus,
    ScoringType,
    ViolationGroup,
    MediaType,
    ReviewAction,
    IssueReviewAction,
    SlaState
)

# Core entities
from .entities import (
    Unit,
    MediaItem,
    IssueVersion,
    Issue,
    WardRegistration,
    BonusCriteria,
    BonusRequest,
    AuditLog,
    SessionRecord,
    StoreMeta,
    StoreRoot,
    ViolationCode,
    SessionContext
)

# Request models
from .requests import (
    LoginRequest,
    VerifyOtpRequest,
    MediaItemInput,
    CreateIssueRequest,
    UpdateIssueRequest,
    SubmitReportRequest,
    ReviewIssueRequest,
    CloseIssueRequest,
    SubmitRegistrationRequest,
    ReviewDecisionRequest,
    SubmitBonusRequest,
    ArchiveRequest
)

# Response models
from .responses import HalLink, LoginChallenge, SessionResponse

__all__ = [
    "CamelModel",
    "utc_now",
    "epoch_ms",
    "Role",
    "TaskStatus",
    "RegistrationStatus",
    "BonusStatus",
    "ScoringType",
    "ViolationGroup",
    "MediaType",
    "ReviewAction",
    "IssueReviewAction",
    "SlaState",
    "Unit",
    "MediaItem",
    "IssueVersion",
    "Issue",
    "WardRegistration",
    "BonusCriteria",
    "BonusRequest",
    "AuditLog",
    "SessionRecord",
    "StoreMeta",
    "StoreRoot",
    "ViolationCode",
    "SessionContext",
    "LoginRequest",
    "VerifyOtpRequest",
    "MediaItemInput",
    "CreateIssueRequest",
    "UpdateIssueRequest",
    "SubmitReportRequest",
    "ReviewIssueRequest",
    "CloseIssueRequest",
    "SubmitRegistrationRequest",
    "ReviewDecisionRequest",
    "SubmitBonusRequest",
    "ArchiveRequest",
    "HalLink",
    "LoginChallenge",
    "SessionResponse"
]
