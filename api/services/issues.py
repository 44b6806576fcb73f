# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle service.

Thin transactional wrapper around the store: every mutation runs in one
store transaction (entity change, version entry and audit entry commit
together) and is then pushed to the remote endpoint in the background.
Unknown issue ids return None.
"""

from datetime import datetime
from typing import Callable, Dict, Any, List, Optional, Iterable
from pydantic.alias_generators import to_camel
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import Issue, SessionContext
from models.enums import TaskStatus, IssueReviewAction
from models.requests import (
    CreateIssueRequest, UpdateIssueRequest, SubmitReportRequest, ReviewIssueRequest
)
from models.remote import CreateIssueAction, UpdateIssueAction
from domain import issues as issue_domain
from domain.catalog import get_violation_code
from middleware.error_handler import ValidationException, AuthorizationException
from services.store import LocalStore
from services.sync import SyncCoordinator
from services.audit import AuditService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Media payloads are pushed but not copied into version snapshots
MEDIA_FIELDS = {"evidence", "report_evidence"}


def partial_document(issue: Issue, field_names: Iterable[str]) -> Dict[str, Any]:
    """Wire-shaped subset of an issue's fields."""
    document = issue.to_document()
    keys = {Issue.model_fields[name].alias or to_camel(name) for name in field_names}
    return {key: value for key, value in document.items() if key in keys}


class IssueService:
    """Create, edit, transition and query issues."""

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

    def create_issue(self, session: SessionContext, request: CreateIssueRequest) -> Issue:
        """
        Record a new violation against a ward.

        Args:
            session: Caller; must be ADMIN or REVIEWER
            request: Creation request

        Returns:
            The created NEW issue

        Raises:
            AuthorizationException: Caller is a ward
            ValidationException: Unknown ward or code, or no evidence
        """
        if not session.is_staff():
            raise AuthorizationException("Only admins and reviewers can create issues")

        with tracer.start_as_current_span("issues.create") as span:
            span.set_attributes({
                "issue.ward_id": request.ward_id,
                "issue.violation_code": request.violation_code
            })

            with self.store.transaction() as root:
                ward = root.users.get(request.ward_id)
                validation = issue_domain.validate_create_request(
                    request, ward, get_violation_code(request.violation_code)
                )
                if not validation.is_valid:
                    raise ValidationException("Invalid issue", validation.errors)

                now = self.clock()
                issue_id = issue_domain.next_issue_id(root.issues.keys(), now)
                issue = issue_domain.build_issue(request, ward, issue_id, now)
                issue_domain.record_version(
                    issue, session, {"status": TaskStatus.NEW.value}, "Created", now
                )
                root.issues[issue.id] = issue
                self.audit.record(
                    root, session.unit_id, "CREATE_ISSUE", issue.id,
                    f"{issue.violation_code} at {issue.ward_name}"
                )

            span.set_attribute("issue.id", issue.id)

        logger.info("Issue created", extra={"issue_id": issue.id, "ward_id": issue.ward_id})
        self.sync.push(CreateIssueAction(payload=issue.to_document()))
        return issue

    def update_issue(
        self,
        session: SessionContext,
        issue_id: str,
        request: UpdateIssueRequest
    ) -> Optional[Issue]:
        """
        Edit descriptive fields of an issue.

        Identity, timestamps, deadline and status are not editable here.
        """
        if not session.is_staff():
            raise AuthorizationException("Only admins and reviewers can edit issues")

        changes = request.changes()
        with self.store.transaction() as root:
            issue = root.issues.get(issue_id)
            if issue is None:
                return None
            if issue.is_terminal():
                raise ValidationException(f"Issue {issue_id} is {issue.status} and can no longer be edited")

            applied = issue_domain.apply_edits(issue, changes)
            if not applied:
                return issue

            now = self.clock()
            issue_domain.record_version(
                issue, session, applied, request.change_reason or "Edited", now, request.operator_name
            )
            self.audit.record(
                root, session.unit_id, "UPDATE_ISSUE", issue.id, ", ".join(sorted(applied))
            )

        self._push_update(issue, list(applied) + ["versions"])
        return issue

    def mark_received(self, session: SessionContext, issue_id: str) -> Optional[Issue]:
        """Ward acknowledges a NEW issue."""
        return self._transition(session, issue_id, TaskStatus.RECEIVED, "Acknowledged")

    def mark_processing(self, session: SessionContext, issue_id: str) -> Optional[Issue]:
        """Ward starts handling the issue."""
        return self._transition(session, issue_id, TaskStatus.PROCESSING, "Processing started")

    def submit_report(
        self,
        session: SessionContext,
        issue_id: str,
        request: SubmitReportRequest
    ) -> Optional[Issue]:
        """
        Ward submits its resolution report, moving the issue to RESOLVED.

        The report is validated before the store is touched.
        """
        validation = issue_domain.validate_report(request)
        if not validation.is_valid:
            raise ValidationException("Incomplete report", validation.errors)

        def apply_report(issue: Issue, now: datetime) -> set:
            issue.report_bbn = request.report_bbn.strip()
            issue.report_content = (
                request.report_content or issue_domain.default_report_content(issue.report_bbn, now)
            )
            issue.report_evidence = issue_domain.to_media_items(request.evidence, "rep", now)
            issue.report_time = now
            issue.resolved_time = now
            return {"report_bbn", "report_content", "report_evidence", "report_time", "resolved_time"}

        return self._transition(
            session, issue_id, TaskStatus.RESOLVED, "Report submitted",
            mutate=apply_report, operator_name=request.operator_name
        )

    def review_issue(
        self,
        session: SessionContext,
        issue_id: str,
        request: ReviewIssueRequest
    ) -> Optional[Issue]:
        """Reviewer confirms (CONFIRMED) or sends back (REJECTED) a resolved issue."""
        target = TaskStatus.CONFIRMED if request.action == IssueReviewAction.CONFIRM else TaskStatus.REJECTED
        reason = request.note or ("Confirmed" if target == TaskStatus.CONFIRMED else "Rejected")
        return self._transition(session, issue_id, target, reason)

    def close_issue(self, session: SessionContext, issue_id: str, reason: str = "") -> Optional[Issue]:
        """Administratively close an issue from any non-terminal state."""
        return self._transition(session, issue_id, TaskStatus.CLOSED, reason or "Closed")

    def _transition(
        self,
        session: SessionContext,
        issue_id: str,
        target: TaskStatus,
        reason: str,
        mutate: Optional[Callable[[Issue, datetime], set]] = None,
        operator_name: str = ""
    ) -> Optional[Issue]:
        with tracer.start_as_current_span("issues.transition") as span:
            span.set_attributes({"issue.id": issue_id, "issue.target_status": target.value})

            with self.store.transaction() as root:
                issue = root.issues.get(issue_id)
                if issue is None:
                    span.set_attribute("issue.result", "not_found")
                    return None

                if not issue_domain.can_perform(session, issue, target):
                    raise AuthorizationException(
                        f"{session.role} cannot move issue {issue_id} to {target.value}"
                    )
                if not issue_domain.can_transition(issue, target):
                    raise ValidationException(
                        f"Cannot move issue {issue_id} from {issue.status} to {target.value}"
                    )

                now = self.clock()
                changed = set(mutate(issue, now)) if mutate else set()
                previous = issue.status
                issue.status = target
                changed.add("status")

                snapshot = partial_document(issue, changed - MEDIA_FIELDS)
                issue_domain.record_version(issue, session, snapshot, reason, now, operator_name)
                self.audit.record(
                    root, session.unit_id, f"ISSUE_{target.value}", issue.id,
                    f"{previous} -> {target.value}: {reason}"
                )

            span.set_attribute("issue.result", "success")

        logger.info(
            "Issue transitioned",
            extra={"issue_id": issue_id, "from_status": previous, "to_status": target.value}
        )
        self._push_update(issue, changed | {"versions"})
        return issue

    def _push_update(self, issue: Issue, field_names: Iterable[str]) -> None:
        self.sync.push(UpdateIssueAction(id=issue.id, payload=partial_document(issue, field_names)))

    # Queries

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        return self.store.get_store().issues.get(issue_id)

    def list_issues(
        self,
        session: Optional[SessionContext] = None,
        ward_id: Optional[str] = None,
        status: Optional[TaskStatus] = None
    ) -> List[Issue]:
        """
        Issues newest first, optionally filtered.

        Ward sessions only ever see their own issues.
        """
        if session is not None and session.is_ward():
            ward_id = session.unit_id

        issues = self.store.get_store().issues.values()
        selected = [
            issue for issue in issues
            if (ward_id is None or issue.ward_id == ward_id)
            and (status is None or issue.status == status)
        ]
        return issue_domain.sort_newest_first(selected)

    def sla_for(self, issue: Issue) -> issue_domain.SlaInfo:
        return issue_domain.sla_state(issue, self.clock())
