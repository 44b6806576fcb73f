# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from models.entities import Unit, Issue, StoreRoot, SessionContext, BonusCriteria
from models.enums import Role, TaskStatus
from models.requests import (
    CreateIssueRequest, SubmitReportRequest, SubmitBonusRequest, LoginRequest,
    UpdateIssueRequest, AuditLogQuery
)
from domain.catalog import slugify, build_seed_units, VIOLATION_CODES


class TestUnitModel:
    """Test Unit model validation."""

    def test_valid_ward(self):
        """Test valid ward unit creation."""
        unit = Unit(
            id='u_1',
            email=' p.hoankiem@pol.vn ',
            role=Role.WARD,
            unit_name='Hoàn Kiếm',
            area_coefficient=1,
            base_score=1200,
            total_violation_points=1300
        )

        assert unit.email == 'p.hoankiem@pol.vn'
        assert unit.is_ward()
        assert not unit.is_staff()

    def test_empty_email_validation(self):
        with pytest.raises(ValidationError) as exc_info:
            Unit(id='u_1', email='   ', role=Role.WARD, unit_name='X', base_score=50)

        assert "Email cannot be empty" in str(exc_info.value)

    def test_coefficient_range(self):
        with pytest.raises(ValidationError):
            Unit(id='u_1', email='a@b.vn', role=Role.WARD, unit_name='X', base_score=50, area_coefficient=5)

    def test_camel_case_document(self):
        unit = Unit(id='u_1', email='a@b.vn', role=Role.WARD, unit_name='X', base_score=50)

        document = unit.to_document()

        assert document['unitName'] == 'X'
        assert document['role'] == 'WARD'
        assert 'totalViolationPoints' not in document


class TestIssueModel:
    """Test Issue model behaviour."""

    def _issue(self, **overrides):
        created = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
        data = {
            "id": "TASK_1740816000000",
            "created_time": created,
            "deadline_time": created + timedelta(minutes=45),
            "ward_id": "u_1",
            "violation_code": "VP_ATGT_01"
        }
        data.update(overrides)
        return Issue(**data)

    def test_defaults(self):
        issue = self._issue()

        assert issue.status == TaskStatus.NEW
        assert issue.evidence == []
        assert issue.sort_key() == 1740816000000

    def test_terminal_statuses(self):
        assert self._issue(status=TaskStatus.CONFIRMED).is_terminal()
        assert self._issue(status=TaskStatus.CLOSED).is_terminal()
        assert not self._issue(status=TaskStatus.REJECTED).is_terminal()

    def test_report_bbn_alias(self):
        issue = Issue.model_validate({
            **self._issue().to_document(),
            "reportBBN": "BB-7"
        })

        assert issue.report_bbn == "BB-7"
        assert issue.to_document()["reportBBN"] == "BB-7"

    def test_naive_timestamps_read_as_utc(self):
        issue = self._issue(created_time=datetime(2025, 3, 1, 8, 0))

        assert issue.created_time.tzinfo == timezone.utc

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            self._issue(status="ARCHIVED")


class TestStoreRoot:
    """Test the store aggregate."""

    def test_find_unit_by_email_ignores_case(self):
        root = StoreRoot(users={unit.id: unit for unit in build_seed_units()})

        assert root.find_unit_by_email('ADMIN@QLHC.HANOI.VN').id == 'u_admin'
        assert root.find_unit_by_email('missing@x.vn') is None

    def test_round_trip_through_json(self):
        root = StoreRoot(users={unit.id: unit for unit in build_seed_units()[:3]})

        restored = StoreRoot.model_validate_json(root.model_dump_json(by_alias=True))

        assert restored.users.keys() == root.users.keys()


class TestSessionContext:
    """Test session role helpers."""

    def test_roles(self):
        session = SessionContext(unit_id='u_reviewer', email='canbo1@qlhc.hanoi.vn', role=Role.REVIEWER)

        assert session.is_staff()
        assert session.has_role(Role.ADMIN, Role.REVIEWER)
        assert not session.has_role(Role.ADMIN)


class TestCatalog:
    """Test fixed catalogs and seeding."""

    @pytest.mark.parametrize("name,slug", [
        ("Hoàn Kiếm", "hoankiem"),
        ("Ô Chợ Dừa", "ochodua"),
        ("Đống Đa", "dongda"),
        ("Văn Miếu - Quốc Tử Giám", "vanmieuquoctugiam"),
    ])
    def test_slugify(self, name, slug):
        assert slugify(name) == slug

    def test_seed_units(self):
        units = {unit.id: unit for unit in build_seed_units()}

        assert units['u_reviewer'].role == Role.REVIEWER
        assert units['u_1'].email == 'p.hoankiem@pol.vn'
        assert [units[f'u_{i}'].total_violation_points for i in range(1, 6)] == [1300, 500, 200, 1000, 1000]
        assert units['u_3'].area_coefficient == 4
        assert units['u_3'].base_score == 50

    def test_violation_codes_unique(self):
        codes = [vc.code for vc in VIOLATION_CODES]

        assert len(codes) == len(set(codes)) == 16

    def test_bonus_criteria_document(self):
        criteria = BonusCriteria(id='B1', content='x', max_points=3, is_fixed=True)

        assert criteria.to_document() == {'id': 'B1', 'content': 'x', 'maxPoints': 3, 'isFixed': True}


class TestRequestModels:
    """Test request model validation."""

    def test_create_issue_request_accepts_camel_case(self):
        request = CreateIssueRequest.model_validate({
            "wardId": "u_1",
            "violationCode": "VP_ATGT_01",
            "evidence": [{"url": "https://cdn.example.com/a.jpg"}]
        })

        assert request.ward_id == "u_1"
        assert request.penalty_points == 1

    def test_negative_penalty_points(self):
        with pytest.raises(ValidationError):
            CreateIssueRequest(ward_id="u_1", violation_code="VP_ATGT_01", penalty_points=-1)

    def test_login_request_normalizes_email(self):
        assert LoginRequest(email='  P.HoanKiem@Pol.VN ').email == 'p.hoankiem@pol.vn'

    def test_report_request_alias(self):
        assert SubmitReportRequest.model_validate({"reportBBN": "BB-1"}).report_bbn == "BB-1"

    def test_bonus_request_positive_points(self):
        with pytest.raises(ValidationError):
            SubmitBonusRequest(criteria_id="B1", requested_points=0, month="03/2025")

    def test_update_changes_only_supplied_fields(self):
        request = UpdateIssueRequest(note="x", change_reason="typo")

        assert request.changes() == {"note": "x"}

    def test_audit_query_limit_bounds(self):
        with pytest.raises(ValidationError):
            AuditLogQuery(limit=0)
        assert AuditLogQuery().limit == 100
