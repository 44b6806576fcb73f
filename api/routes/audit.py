# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit log endpoints for querying the audit trail.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import AuditLogQuery
from models.entities import SessionContext
from models.enums import Role
from services.audit import AuditFilters
from middleware.auth import require_role

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

audit_tag = Tag(name="Audit Logs", description="Audit trail querying")
audit_bp = APIBlueprint(
    'audit',
    __name__,
    url_prefix='/api/audit-logs',
    abp_tags=[audit_tag]
)


@audit_bp.get('')
@require_role(Role.ADMIN, Role.REVIEWER)
def list_audit_logs(session: SessionContext, query: AuditLogQuery):
    """
    List audit log entries, newest first.

    Filters combine with AND; dates are ISO 8601 and treated as UTC when
    no offset is given.
    """
    with tracer.start_as_current_span("audit.list") as span:
        filters = AuditFilters(
            actor=query.actor,
            action=query.action,
            target_id=query.target_id,
            start_date=query.date_from,
            end_date=query.date_to
        )
        entries = current_app.audit_service.list_logs(filters, limit=query.limit)
        span.set_attributes({
            "unit.id": session.unit_id,
            "audit.returned_count": len(entries)
        })

    items = [entry.to_document() for entry in entries]
    params = {
        "actor": query.actor,
        "action": query.action,
        "target_id": query.target_id,
        "limit": query.limit
    }
    return jsonify(current_app.hal_formatter.format_collection(items, "/api/audit-logs", params)), 200
