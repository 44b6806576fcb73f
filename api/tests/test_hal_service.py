# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from datetime import datetime, timedelta, timezone

from services.hal import (
    HalLinkBuilder, AffordanceLinkBuilder, HalResponseBuilder, HalFormatter, create_hal_formatter
)
from models.responses import HalLink
from models.entities import Issue, SessionContext
from models.enums import Role, TaskStatus

T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

WARD = SessionContext(unit_id='u_1', email='p.hoankiem@pol.vn', role=Role.WARD)
OTHER_WARD = SessionContext(unit_id='u_2', email='p.cuanam@pol.vn', role=Role.WARD)
REVIEWER = SessionContext(unit_id='u_reviewer', email='canbo1@qlhc.hanoi.vn', role=Role.REVIEWER)
ADMIN = SessionContext(unit_id='u_admin', email='admin@qlhc.hanoi.vn', role=Role.ADMIN)


def make_issue(status=TaskStatus.NEW):
    return Issue(
        id="TASK_1",
        created_time=T0,
        deadline_time=T0 + timedelta(minutes=45),
        ward_id='u_1',
        violation_code='VP_ATGT_01',
        status=status
    )


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_link("/api/issues/TASK_1")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/issues/TASK_1"
        assert link.method == "GET"
        assert link.type is None

    def test_build_action_link(self):
        """Test building an action link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_action_link("/api/issues/TASK_1", "receive")

        assert link.href == "https://api.example.com/api/issues/TASK_1/receive"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Receive"

    def test_base_url_normalization(self):
        """Test that base URL is properly normalized."""
        builder = HalLinkBuilder("https://api.example.com/")  # Trailing slash

        link = builder.build_link("/api/test")

        assert link.href == "https://api.example.com/api/test"


class TestAffordanceLinkBuilder:
    """Test role- and state-dependent affordances."""

    def test_new_issue_for_owning_ward(self):
        links = AffordanceLinkBuilder("https://api.example.com").build_issue_affordances(make_issue(), WARD)

        assert set(links) == {'self', 'collection', 'receive', 'process', 'report'}

    def test_new_issue_for_other_ward(self):
        links = AffordanceLinkBuilder("https://api.example.com").build_issue_affordances(make_issue(), OTHER_WARD)

        assert set(links) == {'self', 'collection'}

    def test_resolved_issue_for_reviewer(self):
        links = AffordanceLinkBuilder("https://api.example.com").build_issue_affordances(
            make_issue(TaskStatus.RESOLVED), REVIEWER
        )

        assert set(links) == {'self', 'collection', 'review', 'edit'}

    def test_admin_can_close(self):
        links = AffordanceLinkBuilder("https://api.example.com").build_issue_affordances(
            make_issue(TaskStatus.PROCESSING), ADMIN
        )

        assert links['close'].method == "POST"
        assert links['edit'].method == "PATCH"

    def test_terminal_issue_has_no_actions(self):
        links = AffordanceLinkBuilder("https://api.example.com").build_issue_affordances(
            make_issue(TaskStatus.CONFIRMED), ADMIN
        )

        assert set(links) == {'self', 'collection'}

    @pytest.mark.parametrize("status,session,has_review", [
        ("PENDING", REVIEWER, True),
        ("PENDING", WARD, False),
        ("APPROVED", ADMIN, False),
    ])
    def test_review_affordances(self, status, session, has_review):
        links = AffordanceLinkBuilder("https://api.example.com").build_review_affordances(
            "/api/registrations", "REG_1", status, session
        )

        assert ('review' in links) is has_review
        assert links['self'].href == "https://api.example.com/api/registrations/REG_1"


class TestHalResponseBuilder:
    """Test HAL response building."""

    def test_build_collection_response(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_collection_response(
            [{"id": "TASK_1"}, {"id": "TASK_2"}], "/api/issues", {"wardId": "u_1", "status": None}
        )

        assert response['total'] == 2
        assert response['_links']['self']['href'] == "https://api.example.com/api/issues?wardId=u_1"
        assert len(response['_embedded']['items']) == 2

    def test_build_error_response(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response(
            "validation-error", "Validation Error", 400, "Invalid issue", "/api/issues",
            [{"field": "wardId", "message": "Field required"}]
        )

        assert response['type'] == "/problems/validation-error"
        assert response['status'] == 400
        assert response['errors'][0]['field'] == "wardId"
        assert response['_links'] == {}

    def test_unavailable_error_links_sync_status(self):
        response = HalResponseBuilder("https://api.example.com").build_error_response(
            "service-unavailable", "Service Unavailable", 503, "offline", "/api/sync/pull"
        )

        assert response['_links']['status']['href'] == "https://api.example.com/api/sync/status"


class TestHalFormatter:
    """Test high-level HAL formatter."""

    def test_format_issue(self):
        formatter = HalFormatter("https://api.example.com")

        data = formatter.format_issue(make_issue(), WARD, extra={"sla": {"state": "on_time"}})

        assert data['id'] == "TASK_1"
        assert data['wardId'] == "u_1"
        assert data['sla'] == {"state": "on_time"}
        assert 'receive' in data['_links']

    def test_format_authentication_error(self):
        formatter = HalFormatter("https://api.example.com")

        error = formatter.format_authentication_error("Missing authorization token", "/api/issues")

        assert error['status'] == 401
        assert error['_links']['login']['method'] == "POST"


class TestCreateHalFormatter:
    """Test HAL formatter factory function."""

    def test_create_hal_formatter(self):
        formatter = create_hal_formatter("https://api.example.com")

        assert isinstance(formatter, HalFormatter)
        assert formatter.builder.base_url == "https://api.example.com"
