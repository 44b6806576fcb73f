# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Sync and storage endpoints: manual pull, connectivity check, status,
storage usage and archiving.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import ArchiveRequest
from models.entities import SessionContext
from models.enums import Role
from middleware.auth import require_auth, require_role
from middleware.error_handler import ConnectivityException
from utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

sync_tag = Tag(name="Sync", description="Replication with the remote sheet endpoint")
sync_bp = APIBlueprint(
    'sync',
    __name__,
    url_prefix='/api/sync',
    abp_tags=[sync_tag]
)

storage_tag = Tag(name="Storage", description="Local store usage and archiving")
storage_bp = APIBlueprint(
    'storage',
    __name__,
    url_prefix='/api/storage',
    abp_tags=[storage_tag]
)


@sync_bp.get('/status')
@require_auth
def sync_status(session: SessionContext):
    status = current_app.sync_coordinator.get_status().to_dict()
    return jsonify(current_app.hal_formatter.format_resource(status, "/api/sync/status")), 200


@sync_bp.post('/pull')
@require_auth
def pull(session: SessionContext):
    """
    Fetch the remote snapshot and merge it before responding.

    Answers 503 when the remote endpoint is unreachable or not configured.
    """
    coordinator = current_app.sync_coordinator
    if not coordinator.remote.is_configured():
        raise ConnectivityException("Remote endpoint is not configured")

    with tracer.start_as_current_span("sync.manual_pull") as span:
        span.set_attribute("unit.id", session.unit_id)
        result = coordinator.pull_now()

    if not result.success:
        raise ConnectivityException(f"Pull failed: {result.error}")
    return jsonify(current_app.hal_formatter.format_resource(result.to_dict(), "/api/sync/status")), 200


@sync_bp.post('/ping')
@require_auth
def ping(session: SessionContext):
    """Check the remote endpoint without merging data."""
    status = current_app.sync_coordinator.check_connectivity()
    if not status.online:
        raise ConnectivityException(f"Remote endpoint unreachable: {status.last_error}")
    return jsonify(current_app.hal_formatter.format_resource(status.to_dict(), "/api/sync/status")), 200


@storage_bp.get('')
@require_role(Role.ADMIN)
def storage_usage(session: SessionContext):
    usage = current_app.store.get_storage_usage()
    return jsonify(current_app.hal_formatter.format_resource(usage, "/api/storage")), 200


@storage_bp.post('/archive')
@require_role(Role.ADMIN)
def archive(session: SessionContext):
    """Reduce evidence payloads of issues older than ``ageDays`` (default 30)."""
    archive_request = RequestParser.parse_model(ArchiveRequest, required=False)
    count = current_app.store.archive_old_data(archive_request.age_days)
    logger.info(
        "Archive requested",
        extra={"unit_id": session.unit_id, "age_days": archive_request.age_days, "issues_affected": count}
    )
    return jsonify(current_app.hal_formatter.format_resource(
        {"ageDays": archive_request.age_days, "archivedIssues": count}, "/api/storage"
    )), 200
