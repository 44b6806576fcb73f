# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Dashboard endpoints: leaderboard, per-unit statistics and catalogs.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag

from models.requests import UnitPath
from models.entities import SessionContext
from domain.catalog import VIOLATION_CODES
from middleware.auth import require_auth
from middleware.error_handler import NotFoundException

dashboard_tag = Tag(name="Dashboard", description="Competitive scores and statistics")
dashboard_bp = APIBlueprint(
    'dashboard',
    __name__,
    url_prefix='/api/dashboard',
    abp_tags=[dashboard_tag]
)


@dashboard_bp.get('/leaderboard')
@require_auth
def leaderboard(session: SessionContext):
    """Every ward unit with its competitive score and rank; ties share a rank."""
    entries = current_app.dashboard_service.leaderboard()
    items = [
        {
            "unitId": entry.unit_id,
            "unitName": entry.unit_name,
            "areaCoefficient": entry.area_coefficient,
            "score": entry.display_score,
            "rank": entry.rank
        }
        for entry in entries
    ]
    return jsonify(current_app.hal_formatter.format_collection(items, "/api/dashboard/leaderboard")), 200


@dashboard_bp.get('/units/<unit_id>')
@require_auth
def unit_stats(session: SessionContext, path: UnitPath):
    stats = current_app.dashboard_service.unit_stats(path.unit_id)
    if stats is None:
        raise NotFoundException(f"Unit {path.unit_id} not found")
    return jsonify(current_app.hal_formatter.format_resource(
        stats, f"/api/dashboard/units/{path.unit_id}"
    )), 200


@dashboard_bp.get('/violation-codes')
@require_auth
def violation_codes(session: SessionContext):
    items = [code.to_document() for code in VIOLATION_CODES if code.active]
    return jsonify(current_app.hal_formatter.format_collection(items, "/api/dashboard/violation-codes")), 200
