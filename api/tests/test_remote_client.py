# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the remote endpoint HTTP client.
"""

import json
import pytest
import requests
from unittest.mock import Mock

from models.remote import (
    CreateIssueAction, ReviewBonusRequestAction, RemoteSuccess, RemoteFailure,
    parse_remote_result, remote_action_adapter
)
from services.remote import RemoteClient

URL = "https://script.example.com/exec"


def make_response(status_code=200, body=None, raw=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if raw is not None:
        response.json.side_effect = ValueError("bad json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def http():
    return Mock(spec=requests.Session)


class TestReads:
    """Test GET actions."""

    def test_get_all_data(self, http):
        http.get.return_value = make_response(body={"ok": True, "data": {"issues": []}, "time": "now"})
        client = RemoteClient(URL, timeout=3, session=http)

        result = client.get_all_data()

        assert isinstance(result, RemoteSuccess)
        assert result.data == {"issues": []}
        args, kwargs = http.get.call_args
        assert args == (URL,)
        assert kwargs["params"]["action"] == "getAllData"
        assert isinstance(kwargs["params"]["cb"], int)
        assert kwargs["timeout"] == 3

    def test_transport_error(self, http):
        http.get.side_effect = requests.ConnectionError("unreachable")

        result = RemoteClient(URL, session=http).ping()

        assert isinstance(result, RemoteFailure)
        assert "ping failed" in result.reason

    def test_http_error_status(self, http):
        http.get.return_value = make_response(status_code=502)

        result = RemoteClient(URL, session=http).ping()

        assert result.ok is False
        assert result.status_code == 502

    def test_malformed_json(self, http):
        http.get.return_value = make_response(raw="<html>")

        result = RemoteClient(URL, session=http).ping()

        assert result.reason == "Malformed JSON response"

    def test_unconfigured_never_calls_network(self, http):
        client = RemoteClient("", session=http)

        assert client.is_configured() is False
        assert client.get_all_data().ok is False
        http.get.assert_not_called()


class TestWrites:
    """Test POST actions."""

    def test_send_posts_text_plain_json(self, http):
        http.post.return_value = make_response(body={"ok": True})
        client = RemoteClient(URL, session=http)
        action = CreateIssueAction(payload={"id": "TASK_1", "wardName": "Hoàn Kiếm"})

        result = client.send(action)

        assert result.ok is True
        kwargs = http.post.call_args.kwargs
        assert kwargs["headers"]["Content-Type"].startswith("text/plain")
        body = json.loads(kwargs["data"].decode('utf-8'))
        assert body == {"action": "createIssue", "payload": {"id": "TASK_1", "wardName": "Hoàn Kiếm"}}

    def test_review_action_wire_shape(self):
        action = ReviewBonusRequestAction(id="BONUS_1", review_action="APPROVE")

        assert action.to_document() == {"action": "reviewBonusRequest", "id": "BONUS_1", "reviewAction": "APPROVE"}

    def test_remote_reported_failure(self, http):
        http.post.return_value = make_response(body={"ok": False, "error": "Sheet locked"})

        result = RemoteClient(URL, session=http).send(CreateIssueAction(payload={}))

        assert result.ok is False
        assert result.reason == "Sheet locked"

    def test_send_timeout(self, http):
        http.post.side_effect = requests.Timeout("timed out")

        result = RemoteClient(URL, session=http).send(CreateIssueAction(payload={}))

        assert result.ok is False
        assert result.reason.startswith("createIssue failed")


class TestResultParsing:
    """Test tagged result parsing."""

    @pytest.mark.parametrize("body,ok", [
        ({"ok": True}, True),
        ({"ok": True, "data": {"a": 1}}, True),
        ({"ok": "true"}, False),
        ({"ok": True, "data": [1, 2]}, False),
        ([], False),
        ("ok", False),
    ])
    def test_parse(self, body, ok):
        assert parse_remote_result(body).ok is ok

    def test_action_discriminator(self):
        action = remote_action_adapter.validate_python({"action": "updateIssue", "id": "TASK_1", "payload": {}})

        assert action.id == "TASK_1"
        assert type(action).__name__ == "UpdateIssueAction"
