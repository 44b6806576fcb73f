# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the ward compliance tracker.
"""

from enum import Enum


class Role(str, Enum):
    """Unit account roles."""
    ADMIN = "ADMIN"
    REVIEWER = "REVIEWER"
    WARD = "WARD"


class TaskStatus(str, Enum):
    """Issue workflow status enumeration."""
    NEW = "NEW"
    RECEIVED = "RECEIVED"
    PROCESSING = "PROCESSING"
    RESOLVED = "RESOLVED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"


class RegistrationStatus(str, Enum):
    """Ward registration review status."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BonusStatus(str, Enum):
    """Bonus request review status."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScoringType(str, Enum):
    """Penalty policy of a violation code."""
    RATIO = "RATIO"
    DIRECT = "DIRECT"


class ViolationGroup(str, Enum):
    """Violation code groups."""
    TTATGT = "TTATGT"
    TTDT = "TTDT"
    VSMT = "VSMT"


class MediaType(str, Enum):
    """Evidence media types."""
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class ReviewAction(str, Enum):
    """Reviewer decision on registrations and bonus requests."""
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class IssueReviewAction(str, Enum):
    """Reviewer decision on a resolved issue."""
    CONFIRM = "CONFIRM"
    REJECT = "REJECT"


class SlaState(str, Enum):
    """Observed SLA state of an issue."""
    DONE = "done"
    ON_TIME = "on_time"
    OVERDUE = "overdue"
