# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HTTP tests for authentication, issue, review, dashboard, sync and audit
endpoints.
"""

import json
import pytest

ADMIN_EMAIL = 'admin@qlhc.hanoi.vn'
REVIEWER_EMAIL = 'canbo1@qlhc.hanoi.vn'
WARD_EMAIL = 'p.hoankiem@pol.vn'
OTHER_WARD_EMAIL = 'p.cuanam@pol.vn'

ISSUE_BODY = {
    "wardId": "u_1",
    "violationCode": "VP_ATGT_01",
    "locationDescription": "12 Hang Bai",
    "penaltyPoints": 1,
    "evidence": [{"url": "https://cdn.example.com/ev1.jpg"}]
}

REPORT_BODY = {
    "reportBBN": "BB-001",
    "operatorName": "Officer Lan",
    "evidence": [{"url": "https://cdn.example.com/after.jpg"}]
}


def create_issue(client, headers, **overrides):
    response = client.post('/api/issues', json={**ISSUE_BODY, **overrides}, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestAuthEndpoints:
    """Test cases for /api/auth."""

    def test_login_challenge(self, client):
        response = client.post('/api/auth/login', json={"email": WARD_EMAIL.upper()})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['unitName'] == 'Hoàn Kiếm'
        assert data['otpRequired'] is True
        assert data['_links']['verify']['method'] == "POST"

    def test_login_unknown_email(self, client):
        response = client.post('/api/auth/login', json={"email": "nobody@pol.vn"})

        assert response.status_code == 401
        data = response.get_json()
        assert data['type'] == "/problems/authentication-required"
        assert 'login' in data['_links']

    def test_login_missing_body(self, client):
        response = client.post('/api/auth/login')

        assert response.status_code == 400

    def test_verify_wrong_code(self, client):
        response = client.post('/api/auth/verify', json={"email": WARD_EMAIL, "otp": "999999"})

        assert response.status_code == 401
        assert response.get_json()['detail'] == "Invalid one-time code"

    def test_verify_non_ascii_code(self, client):
        response = client.post('/api/auth/verify', json={"email": WARD_EMAIL, "otp": "é"})

        assert response.status_code == 401

    def test_verify_returns_token_and_unit(self, client):
        response = client.post('/api/auth/verify', json={"email": WARD_EMAIL, "otp": "123456"})

        data = response.get_json()
        assert data['tokenType'] == "Bearer"
        assert data['unit']['id'] == 'u_1'
        assert data['expiresIn'] > 0

    def test_session_and_logout(self, client, login):
        headers = login(WARD_EMAIL)

        session = client.get('/api/auth/session', headers=headers)
        assert session.status_code == 200
        assert session.get_json()['id'] == 'u_1'
        assert session.get_json()['tokenId']

        logout = client.post('/api/auth/logout', headers=headers)
        assert logout.get_json() == {"revoked": True}

        assert client.get('/api/auth/session', headers=headers).status_code == 401

    def test_missing_token(self, client):
        response = client.get('/api/issues')

        assert response.status_code == 401
        assert response.get_json()['detail'] == "Missing authorization token"

    def test_garbage_token(self, client):
        response = client.get('/api/issues', headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401


class TestIssueEndpoints:
    """Test cases for /api/issues."""

    def test_create_issue(self, client, login):
        data = create_issue(client, login(ADMIN_EMAIL))

        assert data['id'].startswith("TASK_")
        assert data['status'] == "NEW"
        assert data['wardName'] == "Hoàn Kiếm"
        assert data['sla']['state'] == "on_time"
        assert data['_links']['self']['href'] == f"http://testserver/api/issues/{data['id']}"
        assert 'close' in data['_links']

    def test_ward_cannot_create(self, client, login):
        response = client.post('/api/issues', json=ISSUE_BODY, headers=login(WARD_EMAIL))

        assert response.status_code == 403
        assert response.get_json()['type'] == "/problems/insufficient-permissions"

    def test_invalid_body(self, client, login):
        response = client.post('/api/issues', json={"wardId": "u_1"}, headers=login(ADMIN_EMAIL))

        assert response.status_code == 400
        fields = {error['field'] for error in response.get_json()['errors']}
        assert 'violationCode' in fields

    def test_unknown_code(self, client, login):
        response = client.post(
            '/api/issues', json={**ISSUE_BODY, "violationCode": "VP_NOPE"}, headers=login(ADMIN_EMAIL)
        )

        assert response.status_code == 400
        assert "Unknown violation code: VP_NOPE" in response.get_json()['errors']

    def test_full_workflow(self, client, login):
        admin = login(ADMIN_EMAIL)
        reviewer = login(REVIEWER_EMAIL)
        ward = login(WARD_EMAIL)
        issue_id = create_issue(client, admin)['id']

        received = client.post(f'/api/issues/{issue_id}/receive', headers=ward)
        assert received.get_json()['status'] == "RECEIVED"
        assert 'process' in received.get_json()['_links']

        processing = client.post(f'/api/issues/{issue_id}/process', headers=ward)
        assert processing.get_json()['status'] == "PROCESSING"

        resolved = client.post(f'/api/issues/{issue_id}/report', json=REPORT_BODY, headers=ward)
        assert resolved.status_code == 200
        assert resolved.get_json()['reportBBN'] == "BB-001"

        confirmed = client.post(f'/api/issues/{issue_id}/review', json={"action": "CONFIRM"}, headers=reviewer)
        data = confirmed.get_json()
        assert data['status'] == "CONFIRMED"
        assert data['sla']['state'] == "done"
        assert len(data['versions']) == 5

    def test_incomplete_report(self, client, login):
        issue_id = create_issue(client, login(ADMIN_EMAIL))['id']

        response = client.post(
            f'/api/issues/{issue_id}/report', json={"operatorName": "Op"}, headers=login(WARD_EMAIL)
        )

        assert response.status_code == 400
        assert len(response.get_json()['errors']) == 2

    def test_illegal_transition(self, client, login):
        issue_id = create_issue(client, login(ADMIN_EMAIL))['id']

        response = client.post(f'/api/issues/{issue_id}/review', json={"action": "CONFIRM"}, headers=login(REVIEWER_EMAIL))

        assert response.status_code == 400

    def test_close_with_and_without_body(self, client, login):
        admin = login(ADMIN_EMAIL)
        first = create_issue(client, admin)['id']
        second = create_issue(client, admin)['id']

        assert client.post(f'/api/issues/{first}/close', headers=admin).get_json()['status'] == "CLOSED"
        closed = client.post(f'/api/issues/{second}/close', json={"reason": "Duplicate"}, headers=admin).get_json()
        assert closed['versions'][-1]['changeReason'] == "Duplicate"

    def test_reviewer_cannot_close(self, client, login):
        issue_id = create_issue(client, login(ADMIN_EMAIL))['id']

        assert client.post(f'/api/issues/{issue_id}/close', headers=login(REVIEWER_EMAIL)).status_code == 403

    def test_edit_issue(self, client, login):
        admin = login(ADMIN_EMAIL)
        issue_id = create_issue(client, admin)['id']

        response = client.patch(
            f'/api/issues/{issue_id}',
            json={"note": "Near the gate", "changeReason": "Detail"},
            headers=admin
        )

        data = response.get_json()
        assert data['note'] == "Near the gate"
        assert data['versions'][-1]['dataSnapshot'] == {"note": "Near the gate"}

    def test_unknown_issue(self, client, login):
        ward = login(WARD_EMAIL)

        assert client.get('/api/issues/TASK_0', headers=ward).status_code == 404
        response = client.post('/api/issues/TASK_0/receive', headers=ward)
        assert response.status_code == 404
        assert response.get_json()['type'] == "/problems/resource-not-found"

    def test_ward_sees_only_own_issues(self, client, login):
        admin = login(ADMIN_EMAIL)
        own = create_issue(client, admin)['id']
        other = create_issue(client, admin, wardId="u_2")['id']
        ward = login(WARD_EMAIL)

        listing = client.get('/api/issues?ward_id=u_2', headers=ward).get_json()
        assert [item['id'] for item in listing['_embedded']['items']] == [own]

        assert client.get(f'/api/issues/{other}', headers=ward).status_code == 404
        assert client.get(f'/api/issues/{own}', headers=ward).status_code == 200

    def test_staff_filter_by_status(self, client, login):
        admin = login(ADMIN_EMAIL)
        first = create_issue(client, admin)['id']
        create_issue(client, admin)
        client.post(f'/api/issues/{first}/receive', headers=login(WARD_EMAIL))

        listing = client.get('/api/issues?status=RECEIVED', headers=admin).get_json()

        assert listing['total'] == 1
        assert listing['_embedded']['items'][0]['id'] == first


class TestReviewEndpoints:
    """Test cases for registrations and bonus requests."""

    def test_tier_preview(self, client, login):
        response = client.get('/api/registrations/preview?points=1000', headers=login(WARD_EMAIL))

        data = response.get_json()
        assert data['coefficient'] == 2
        assert data['base_score'] == 1000

    def test_registration_approval_updates_leaderboard_unit(self, client, login):
        ward = login(OTHER_WARD_EMAIL)
        reviewer = login(REVIEWER_EMAIL)

        submitted = client.post('/api/registrations', json={"points": 1300, "month": "03/2025"}, headers=ward)
        assert submitted.status_code == 201
        registration = submitted.get_json()
        assert registration['proposedCoefficient'] == 1
        assert 'review' not in registration['_links']

        reviewed = client.post(
            f"/api/registrations/{registration['id']}/review", json={"action": "APPROVE"}, headers=reviewer
        )
        assert reviewed.get_json()['status'] == "APPROVED"

        stats = client.get('/api/dashboard/units/u_2', headers=reviewer).get_json()
        assert stats['areaCoefficient'] == 1

    def test_registration_bad_month(self, client, login):
        response = client.post('/api/registrations', json={"points": 10, "month": "2025-03"}, headers=login(WARD_EMAIL))

        assert response.status_code == 400

    def test_review_unknown_registration(self, client, login):
        response = client.post('/api/registrations/REG_0/review', json={"action": "APPROVE"}, headers=login(ADMIN_EMAIL))

        assert response.status_code == 404

    def test_bonus_request_flow(self, client, login):
        ward = login(WARD_EMAIL)
        admin = login(ADMIN_EMAIL)

        criteria = client.get('/api/bonus-requests/criteria', headers=ward).get_json()
        assert criteria['total'] == 6
        assert criteria['_embedded']['items'][0]['maxPoints'] == 3

        bonus = client.post(
            '/api/bonus-requests',
            json={"criteriaId": "B1", "requestedPoints": 3, "month": "03/2025"},
            headers=ward
        ).get_json()
        assert bonus['status'] == "PENDING"

        pending = client.get('/api/bonus-requests', headers=admin).get_json()
        assert 'review' in pending['_embedded']['items'][0]['_links']

        rejected = client.post(
            f"/api/bonus-requests/{bonus['id']}/review", json={"action": "REJECT", "note": "No proof"}, headers=admin
        ).get_json()
        assert rejected['status'] == "REJECTED"
        assert 'finalPoints' not in rejected

    def test_fixed_bonus_amount_enforced(self, client, login):
        response = client.post(
            '/api/bonus-requests',
            json={"criteriaId": "B1", "requestedPoints": 1, "month": "03/2025"},
            headers=login(WARD_EMAIL)
        )

        assert response.status_code == 400


class TestDashboardEndpoints:
    """Test cases for /api/dashboard."""

    def test_leaderboard(self, client, login, store):
        response = client.get('/api/dashboard/leaderboard', headers=login(WARD_EMAIL))

        data = response.get_json()
        wards = [u for u in store.get_store().users.values() if u.is_ward()]
        assert data['total'] == len(wards)
        assert all(item['score'] == 100.0 and item['rank'] == 1 for item in data['_embedded']['items'])

    def test_unknown_unit(self, client, login):
        assert client.get('/api/dashboard/units/u_missing', headers=login(WARD_EMAIL)).status_code == 404

    def test_violation_codes(self, client, login):
        data = client.get('/api/dashboard/violation-codes', headers=login(WARD_EMAIL)).get_json()

        assert data['total'] == 16
        assert data['_embedded']['items'][0]['scoringType'] == "RATIO"


class TestSyncAndStorageEndpoints:
    """Test cases for /api/sync and /api/storage."""

    def test_status(self, client, login):
        data = client.get('/api/sync/status', headers=login(WARD_EMAIL)).get_json()

        assert data['configured'] is True

    def test_manual_pull(self, client, login, remote, store):
        remote.snapshot = {"issues": []}

        response = client.post('/api/sync/pull', headers=login(ADMIN_EMAIL))

        assert response.status_code == 200
        assert response.get_json()['success'] is True

    def test_manual_pull_offline(self, client, login, remote):
        headers = login(ADMIN_EMAIL)
        remote.failure = "HTTP 500"

        response = client.post('/api/sync/pull', headers=headers)

        assert response.status_code == 503
        data = response.get_json()
        assert data['type'] == "/problems/service-unavailable"
        assert 'status' in data['_links']

    def test_ping_offline(self, client, login, remote):
        headers = login(WARD_EMAIL)
        remote.failure = "timeout"

        assert client.post('/api/sync/ping', headers=headers).status_code == 503

    def test_storage_admin_only(self, client, login):
        assert client.get('/api/storage', headers=login(WARD_EMAIL)).status_code == 403

        usage = client.get('/api/storage', headers=login(ADMIN_EMAIL)).get_json()
        assert usage['bytes'] > 0
        assert usage['isPersistent'] is True

    def test_archive_defaults_to_30_days(self, client, login):
        response = client.post('/api/storage/archive', headers=login(ADMIN_EMAIL))

        assert response.get_json()['ageDays'] == 30
        assert response.get_json()['archivedIssues'] == 0


class TestAuditEndpoints:
    """Test cases for /api/audit-logs."""

    def test_filter_by_action(self, client, login):
        admin = login(ADMIN_EMAIL)
        issue_id = create_issue(client, admin)['id']

        data = client.get('/api/audit-logs?action=CREATE_ISSUE', headers=admin).get_json()

        assert data['total'] == 1
        entry = data['_embedded']['items'][0]
        assert entry['targetId'] == issue_id
        assert entry['actor'] == 'u_admin'

    def test_ward_forbidden(self, client, login):
        assert client.get('/api/audit-logs', headers=login(WARD_EMAIL)).status_code == 403


class TestErrorHandling:
    """Test framework-level errors use the HAL error shape."""

    def test_unknown_route(self, client):
        response = client.get('/api/does-not-exist')

        assert response.status_code == 404
        assert response.get_json()['type'] == "/problems/not-found"
