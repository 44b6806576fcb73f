# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints: email login, one-time code verification, logout.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import LoginRequest, VerifyOtpRequest
from models.responses import SessionResponse
from models.entities import SessionContext
from middleware.auth import require_auth
from utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="Unit login and session management")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


@auth_bp.post('/login')
def login():
    """
    Request a one-time code for a unit email.

    Returns the matched unit name; the code must then be sent to /verify.
    """
    login_request = RequestParser.parse_model(LoginRequest)
    challenge = current_app.session_service.login(login_request.email)

    formatter = current_app.hal_formatter
    response = formatter.format_resource(challenge.to_document(), "/api/auth/login")
    response['_links']['verify'] = formatter.builder.link_builder.build_link(
        "/api/auth/verify",
        method="POST",
        content_type="application/json",
        title="Verify one-time code"
    ).model_dump(exclude_none=True)
    return jsonify(response), 200


@auth_bp.post('/verify')
def verify():
    """Verify the one-time code and open a session."""
    verify_request = RequestParser.parse_model(VerifyOtpRequest)

    with tracer.start_as_current_span("auth.verify") as span:
        session_service = current_app.session_service
        session, token = session_service.verify_otp(verify_request.email, verify_request.otp)
        unit = current_app.store.find_unit(session.unit_id)
        span.set_attribute("unit.id", session.unit_id)

    body = SessionResponse(token=token, expires_in=session_service.ttl_seconds, unit=unit)
    response = current_app.hal_formatter.format_resource(body.to_document(), "/api/auth/session")
    return jsonify(response), 200


@auth_bp.post('/logout')
@require_auth
def logout(session: SessionContext):
    """Revoke the current session token."""
    revoked = current_app.session_service.logout(session)
    return jsonify({"revoked": revoked}), 200


@auth_bp.get('/session')
@require_auth
def get_session(session: SessionContext):
    """Return the logged-in unit."""
    unit = current_app.store.find_unit(session.unit_id)
    data = unit.to_document()
    data['tokenId'] = session.token_id
    return jsonify(current_app.hal_formatter.format_resource(data, "/api/auth/session")), 200
