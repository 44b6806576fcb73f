# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Registration and bonus request endpoints.

Wards submit; admins and reviewers approve or reject.
"""

from dataclasses import asdict
from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import (
    SubmitRegistrationRequest,
    SubmitBonusRequest,
    ReviewDecisionRequest,
    WardQuery,
    TierPreviewQuery,
    RegistrationPath,
    BonusRequestPath
)
from models.entities import SessionContext
from models.enums import Role
from middleware.auth import require_auth, require_role
from middleware.error_handler import NotFoundException
from utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

REGISTRATIONS_PATH = "/api/registrations"
BONUS_REQUESTS_PATH = "/api/bonus-requests"

registrations_tag = Tag(name="Registrations", description="Ward violation-point registrations")
registrations_bp = APIBlueprint(
    'registrations',
    __name__,
    url_prefix=REGISTRATIONS_PATH,
    abp_tags=[registrations_tag]
)

bonuses_tag = Tag(name="Bonus Requests", description="Ward bonus point requests")
bonuses_bp = APIBlueprint(
    'bonus_requests',
    __name__,
    url_prefix=BONUS_REQUESTS_PATH,
    abp_tags=[bonuses_tag]
)


def _format(item, collection_path: str, session: SessionContext):
    return current_app.hal_formatter.format_review_item(item.to_document(), collection_path, session)


# Registrations

@registrations_bp.get('')
@require_auth
def list_registrations(session: SessionContext, query: WardQuery):
    registrations = current_app.registration_service.list_registrations(session, query.ward_id)
    items = [_format(registration, REGISTRATIONS_PATH, session) for registration in registrations]
    return jsonify(current_app.hal_formatter.format_collection(
        items, REGISTRATIONS_PATH, {"ward_id": query.ward_id}
    )), 200


@registrations_bp.post('')
@require_role(Role.WARD)
def submit_registration(session: SessionContext):
    """Submit the ward's violation points for a month; the proposed area tier is derived."""
    submit_request = RequestParser.parse_model(SubmitRegistrationRequest)
    registration = current_app.registration_service.submit_registration(session, submit_request)
    return jsonify(_format(registration, REGISTRATIONS_PATH, session)), 201


@registrations_bp.get('/preview')
@require_auth
def preview_tier(session: SessionContext, query: TierPreviewQuery):
    """Area tier that a registration with the given points would receive."""
    tier = current_app.registration_service.preview_tier(query.points)
    data = {"points": query.points, **asdict(tier)}
    return jsonify(current_app.hal_formatter.format_resource(
        data, f"{REGISTRATIONS_PATH}/preview?points={query.points:g}"
    )), 200


@registrations_bp.post('/<registration_id>/review')
@require_role(Role.ADMIN, Role.REVIEWER)
def review_registration(session: SessionContext, path: RegistrationPath):
    """Approve or reject a pending registration; approval updates the ward's tier."""
    review_request = RequestParser.parse_model(ReviewDecisionRequest)
    registration = current_app.registration_service.review_registration(
        session, path.registration_id, review_request
    )
    if registration is None:
        raise NotFoundException(f"Registration {path.registration_id} not found")
    return jsonify(_format(registration, REGISTRATIONS_PATH, session)), 200


# Bonus requests

@bonuses_bp.get('')
@require_auth
def list_bonus_requests(session: SessionContext, query: WardQuery):
    bonuses = current_app.bonus_service.list_bonus_requests(session, query.ward_id)
    items = [_format(bonus, BONUS_REQUESTS_PATH, session) for bonus in bonuses]
    return jsonify(current_app.hal_formatter.format_collection(
        items, BONUS_REQUESTS_PATH, {"ward_id": query.ward_id}
    )), 200


@bonuses_bp.get('/criteria')
@require_auth
def list_bonus_criteria(session: SessionContext):
    criteria = [item.to_document() for item in current_app.bonus_service.list_criteria()]
    return jsonify(current_app.hal_formatter.format_collection(
        criteria, f"{BONUS_REQUESTS_PATH}/criteria"
    )), 200


@bonuses_bp.post('')
@require_role(Role.WARD)
def submit_bonus_request(session: SessionContext):
    submit_request = RequestParser.parse_model(SubmitBonusRequest)
    bonus = current_app.bonus_service.submit_bonus_request(session, submit_request)
    return jsonify(_format(bonus, BONUS_REQUESTS_PATH, session)), 201


@bonuses_bp.post('/<bonus_id>/review')
@require_role(Role.ADMIN, Role.REVIEWER)
def review_bonus_request(session: SessionContext, path: BonusRequestPath):
    review_request = RequestParser.parse_model(ReviewDecisionRequest)
    bonus = current_app.bonus_service.review_bonus_request(session, path.bonus_id, review_request)
    if bonus is None:
        raise NotFoundException(f"Bonus request {path.bonus_id} not found")
    return jsonify(_format(bonus, BONUS_REQUESTS_PATH, session)), 200
