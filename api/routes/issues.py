# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Issue endpoints: creation, editing, workflow transitions and listing.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import (
    CreateIssueRequest,
    UpdateIssueRequest,
    SubmitReportRequest,
    ReviewIssueRequest,
    CloseIssueRequest,
    IssueQuery,
    IssuePath
)
from models.entities import Issue, SessionContext
from models.enums import Role
from middleware.auth import require_auth, require_role
from middleware.error_handler import NotFoundException
from utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

issues_tag = Tag(name="Issues", description="Violation issues and their SLA workflow")
issues_bp = APIBlueprint(
    'issues',
    __name__,
    url_prefix='/api/issues',
    abp_tags=[issues_tag]
)


def _issue_response(issue: Issue, session: SessionContext):
    service = current_app.issue_service
    sla = service.sla_for(issue).to_dict()
    return current_app.hal_formatter.format_issue(issue, session, extra={"sla": sla})


def _found(issue, issue_id: str) -> Issue:
    if issue is None:
        raise NotFoundException(f"Issue {issue_id} not found")
    return issue


@issues_bp.get('')
@require_auth
def list_issues(session: SessionContext, query: IssueQuery):
    """
    List issues newest first.

    Ward units only see their own issues regardless of the wardId filter.
    """
    issues = current_app.issue_service.list_issues(session, query.ward_id, query.status)
    items = [_issue_response(issue, session) for issue in issues]
    params = {"ward_id": query.ward_id, "status": query.status.value if query.status else None}
    return jsonify(current_app.hal_formatter.format_collection(items, "/api/issues", params)), 200


@issues_bp.post('')
@require_role(Role.ADMIN, Role.REVIEWER)
def create_issue(session: SessionContext):
    """Record a new violation against a ward."""
    create_request = RequestParser.parse_model(CreateIssueRequest)
    issue = current_app.issue_service.create_issue(session, create_request)
    return jsonify(_issue_response(issue, session)), 201


@issues_bp.get('/<issue_id>')
@require_auth
def get_issue(session: SessionContext, path: IssuePath):
    issue = _found(current_app.issue_service.get_issue(path.issue_id), path.issue_id)
    if session.is_ward() and issue.ward_id != session.unit_id:
        raise NotFoundException(f"Issue {path.issue_id} not found")
    return jsonify(_issue_response(issue, session)), 200


@issues_bp.patch('/<issue_id>')
@require_role(Role.ADMIN, Role.REVIEWER)
def update_issue(session: SessionContext, path: IssuePath):
    """Edit descriptive fields; each edit is recorded in the version history."""
    update_request = RequestParser.parse_model(UpdateIssueRequest)
    issue = current_app.issue_service.update_issue(session, path.issue_id, update_request)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200


@issues_bp.post('/<issue_id>/receive')
@require_role(Role.WARD)
def receive_issue(session: SessionContext, path: IssuePath):
    issue = current_app.issue_service.mark_received(session, path.issue_id)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200


@issues_bp.post('/<issue_id>/process')
@require_role(Role.WARD)
def process_issue(session: SessionContext, path: IssuePath):
    issue = current_app.issue_service.mark_processing(session, path.issue_id)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200


@issues_bp.post('/<issue_id>/report')
@require_role(Role.WARD)
def report_issue(session: SessionContext, path: IssuePath):
    """Submit the resolution report (penalty record number, operator, evidence)."""
    report_request = RequestParser.parse_model(SubmitReportRequest)
    issue = current_app.issue_service.submit_report(session, path.issue_id, report_request)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200


@issues_bp.post('/<issue_id>/review')
@require_role(Role.ADMIN, Role.REVIEWER)
def review_issue(session: SessionContext, path: IssuePath):
    """Confirm or reject a resolved issue."""
    review_request = RequestParser.parse_model(ReviewIssueRequest)
    issue = current_app.issue_service.review_issue(session, path.issue_id, review_request)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200


@issues_bp.post('/<issue_id>/close')
@require_role(Role.ADMIN)
def close_issue(session: SessionContext, path: IssuePath):
    close_request = RequestParser.parse_model(CloseIssueRequest, required=False)
    issue = current_app.issue_service.close_issue(session, path.issue_id, close_request.reason)
    return jsonify(_issue_response(_found(issue, path.issue_id), session)), 200
