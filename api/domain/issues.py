# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle domain logic.

This module contains pure functions for issue creation, workflow
transitions, report validation, version history and SLA observation.
"""

import math
from typing import List, Dict, Any, Optional, Iterable, Tuple
from dataclasses import dataclass
from datetime import datetime, timedelta

from models.base import epoch_ms
from models.entities import (
    Issue, IssueVersion, MediaItem, Unit, ViolationCode, SessionContext
)
from models.enums import TaskStatus, Role, SlaState
from models.requests import CreateIssueRequest, SubmitReportRequest, MediaItemInput

SLA_WINDOW = timedelta(minutes=45)

# Target status -> statuses it may be entered from
TRANSITIONS: Dict[TaskStatus, Tuple[TaskStatus, ...]] = {
    TaskStatus.RECEIVED: (TaskStatus.NEW,),
    TaskStatus.PROCESSING: (TaskStatus.NEW, TaskStatus.RECEIVED),
    TaskStatus.RESOLVED: (TaskStatus.NEW, TaskStatus.RECEIVED, TaskStatus.PROCESSING, TaskStatus.REJECTED),
    TaskStatus.CONFIRMED: (TaskStatus.RESOLVED,),
    TaskStatus.REJECTED: (TaskStatus.RESOLVED,),
    TaskStatus.CLOSED: (
        TaskStatus.NEW, TaskStatus.RECEIVED, TaskStatus.PROCESSING,
        TaskStatus.RESOLVED, TaskStatus.REJECTED
    ),
}

# Target status -> roles allowed to perform the transition
TRANSITION_ROLES: Dict[TaskStatus, Tuple[Role, ...]] = {
    TaskStatus.RECEIVED: (Role.WARD,),
    TaskStatus.PROCESSING: (Role.WARD,),
    TaskStatus.RESOLVED: (Role.WARD,),
    TaskStatus.CONFIRMED: (Role.ADMIN, Role.REVIEWER),
    TaskStatus.REJECTED: (Role.ADMIN, Role.REVIEWER),
    TaskStatus.CLOSED: (Role.ADMIN,),
}

EDITABLE_FIELDS = ('custom_name', 'note', 'location_description', 'source', 'penalty_points')


@dataclass
class ValidationResult:
    """Result of input validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []


@dataclass
class SlaInfo:
    """Observed SLA state of an issue at a point in time."""
    state: SlaState
    label: str
    remaining_seconds: int = 0
    overdue_minutes: int = 0
    deadline_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "label": self.label,
            "remainingSeconds": self.remaining_seconds,
            "overdueMinutes": self.overdue_minutes,
            "deadlineTime": self.deadline_time.isoformat() if self.deadline_time else None
        }


def next_stamped_id(prefix: str, existing_ids: Iterable[str], now: datetime) -> str:
    """
    Generate a ``<prefix>_<epoch-ms>`` id unique among ``existing_ids``.

    A stamp not newer than the latest existing one is bumped past it, so
    ids stay unique and keep creation order.
    """
    head = f"{prefix}_"
    stamp = epoch_ms(now)
    stamps = [
        int(existing[len(head):]) for existing in existing_ids
        if existing.startswith(head) and existing[len(head):].isdigit()
    ]
    if stamps and max(stamps) >= stamp:
        stamp = max(stamps) + 1
    return f"{head}{stamp}"


def next_issue_id(existing_ids: Iterable[str], now: datetime) -> str:
    return next_stamped_id("TASK", existing_ids, now)


def to_media_items(inputs: List[MediaItemInput], prefix: str, now: datetime) -> List[MediaItem]:
    """Convert client evidence to stored media items, assigning missing ids."""
    stamp = epoch_ms(now)
    items = []
    for index, item in enumerate(inputs):
        items.append(MediaItem(
            id=item.id or f"{prefix}_{stamp}_{index}",
            type=item.type,
            url=item.url,
            description=item.description,
            path=item.path
        ))
    return items


def validate_create_request(
    request: CreateIssueRequest,
    ward: Optional[Unit],
    violation_code: Optional[ViolationCode]
) -> ValidationResult:
    """
    Validate an issue creation request against the unit and code catalogs.

    Args:
        request: Creation request
        ward: Target unit, or None when the id is unknown
        violation_code: Catalog entry, or None when the code is unknown

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    warnings = []

    if ward is None:
        errors.append(f"Unknown ward: {request.ward_id}")
    elif not ward.is_ward():
        errors.append(f"Unit {request.ward_id} is not a ward")

    if violation_code is None:
        errors.append(f"Unknown violation code: {request.violation_code}")
    elif not violation_code.active:
        errors.append(f"Violation code {request.violation_code} is not active")

    if not request.evidence:
        errors.append("At least one evidence item is required")

    if not request.location_description.strip():
        warnings.append("Location description is empty")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def build_issue(
    request: CreateIssueRequest,
    ward: Unit,
    issue_id: str,
    now: datetime
) -> Issue:
    """Create a NEW issue with its deadline fixed at creation + 45 minutes."""
    return Issue(
        id=issue_id,
        custom_name=request.custom_name,
        created_time=now,
        deadline_time=now + SLA_WINDOW,
        ward_id=ward.id,
        ward_name=ward.unit_name,
        location_description=request.location_description.strip(),
        violation_code=request.violation_code,
        penalty_points=request.penalty_points,
        source=request.source,
        note=request.note,
        evidence=to_media_items(request.evidence, "ev", now),
        status=TaskStatus.NEW
    )


def validate_report(request: SubmitReportRequest) -> ValidationResult:
    """
    Validate a ward resolution report before it reaches the store.

    A report needs a penalty record number, an operator name and at least
    one piece of post-resolution evidence.
    """
    errors = []

    if not request.report_bbn.strip():
        errors.append("Report record number (reportBBN) is required")

    if not request.operator_name.strip():
        errors.append("Operator name is required")

    if not request.evidence:
        errors.append("At least one post-resolution evidence item is required")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def default_report_content(report_bbn: str, report_time: datetime) -> str:
    stamp = report_time.strftime('%H:%M %d/%m/%Y')
    return f"Issued penalty record No. {report_bbn} at {stamp}; violation cleared."


def can_transition(issue: Issue, target: TaskStatus) -> bool:
    """Check if the workflow allows moving ``issue`` into ``target``."""
    if issue.is_terminal():
        return False
    return issue.status in TRANSITIONS.get(target, ())


def can_perform(session: SessionContext, issue: Issue, target: TaskStatus) -> bool:
    """Check role gating, including ward ownership for ward transitions."""
    roles = TRANSITION_ROLES.get(target, ())
    if not session.has_role(*roles):
        return False
    if session.is_ward() and issue.ward_id != session.unit_id:
        return False
    return True


def allowed_transitions(issue: Issue, session: SessionContext) -> List[TaskStatus]:
    """Transitions available to ``session`` on ``issue`` right now."""
    return [
        target for target in TRANSITIONS
        if can_transition(issue, target) and can_perform(session, issue, target)
    ]


def record_version(
    issue: Issue,
    session: SessionContext,
    changes: Dict[str, Any],
    reason: str,
    now: datetime,
    operator_name: str = ""
) -> IssueVersion:
    """Append a version entry holding the changed fields to ``issue``."""
    version = IssueVersion(
        version_id=f"v_{epoch_ms(now)}_{len(issue.versions) + 1}",
        updated_at=now,
        updated_by=session.unit_id,
        operator_name=operator_name or session.unit_name,
        change_reason=reason,
        data_snapshot=changes
    )
    issue.versions.append(version)
    return version


def apply_edits(issue: Issue, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply descriptive field edits, ignoring anything not editable.

    Returns:
        The subset of ``changes`` that actually modified the issue
    """
    applied = {}
    for name, value in changes.items():
        if name not in EDITABLE_FIELDS:
            continue
        if getattr(issue, name) != value:
            setattr(issue, name, value)
            applied[name] = value
    return applied


def sla_state(issue: Issue, now: datetime) -> SlaInfo:
    """
    Observe the SLA of an issue.

    Breach never blocks a transition; once an issue is CONFIRMED or CLOSED
    the state is always ``done``.
    """
    if issue.is_terminal():
        return SlaInfo(state=SlaState.DONE, label="done", deadline_time=issue.deadline_time)

    remaining = (issue.deadline_time - now).total_seconds()
    if remaining > 0:
        seconds = int(remaining)
        minutes, secs = divmod(seconds, 60)
        return SlaInfo(
            state=SlaState.ON_TIME,
            label=f"{minutes}m {secs}s",
            remaining_seconds=seconds,
            deadline_time=issue.deadline_time
        )

    overdue_minutes = math.ceil(-remaining / 60)
    return SlaInfo(
        state=SlaState.OVERDUE,
        label=f"overdue {overdue_minutes} minutes",
        overdue_minutes=overdue_minutes,
        deadline_time=issue.deadline_time
    )


def is_sla_breached(issue: Issue, now: datetime) -> bool:
    return sla_state(issue, now).state == SlaState.OVERDUE


def sort_newest_first(issues: Iterable[Issue]) -> List[Issue]:
    return sorted(issues, key=lambda issue: (issue.sort_key(), issue.id), reverse=True)
