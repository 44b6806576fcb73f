# SPDX-License-Identifier: Apache-2.0

"""
HTTP client for the remote sync endpoint.

Every call returns a tagged ``RemoteSuccess`` or ``RemoteFailure``; transport
errors, non-2xx statuses and malformed JSON never raise out of this module.
"""

import os
import json
from typing import Optional
import requests
from opentelemetry import trace
import logging

from models.base import utc_now, epoch_ms
from models.remote import (
    RemoteAction, RemoteResult, RemoteFailure, parse_remote_result
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0


class RemoteClient:
    """
    Client for the single-URL remote endpoint.

    Reads use ``GET ?action=<name>&cb=<ms>``; writes POST a JSON body as
    ``text/plain`` so the endpoint does not need to answer CORS preflights.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the remote client.

        Args:
            base_url: Endpoint URL; empty means no remote is configured
            timeout: Per-request timeout in seconds
            session: requests session to reuse
        """
        self.base_url = base_url if base_url is not None else os.getenv("REMOTE_API_URL", "")
        self.timeout = timeout or float(os.getenv("REMOTE_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC))
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.base_url)

    def ping(self) -> RemoteResult:
        return self._get("ping")

    def get_all_data(self) -> RemoteResult:
        return self._get("getAllData")

    def send(self, action: RemoteAction) -> RemoteResult:
        """
        POST an outbound action.

        Args:
            action: Tagged action variant

        Returns:
            Parsed result; callers treat pushes as best-effort
        """
        if not self.is_configured():
            return RemoteFailure(reason="remote endpoint not configured")

        body = action.to_document()
        with tracer.start_as_current_span("remote.post") as span:
            span.set_attribute("remote.action", body["action"])
            try:
                response = self.session.post(
                    self.base_url,
                    data=json.dumps(body, ensure_ascii=False).encode('utf-8'),
                    headers={"Content-Type": "text/plain;charset=utf-8"},
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                span.set_attribute("remote.result", "transport_error")
                return RemoteFailure(reason=f"{body['action']} failed: {str(e)}")

            result = self._to_result(response)
            span.set_attribute("remote.result", "success" if result.ok else "failure")
            return result

    def _get(self, action: str) -> RemoteResult:
        if not self.is_configured():
            return RemoteFailure(reason="remote endpoint not configured")

        with tracer.start_as_current_span("remote.get") as span:
            span.set_attribute("remote.action", action)
            try:
                response = self.session.get(
                    self.base_url,
                    params={"action": action, "cb": epoch_ms(utc_now())},
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                span.set_attribute("remote.result", "transport_error")
                logger.warning(f"Remote {action} failed: {str(e)}")
                return RemoteFailure(reason=f"{action} failed: {str(e)}")

            result = self._to_result(response)
            span.set_attribute("remote.result", "success" if result.ok else "failure")
            return result

    def _to_result(self, response: requests.Response) -> RemoteResult:
        if not response.ok:
            return RemoteFailure(
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code
            )
        try:
            body = response.json()
        except ValueError:
            return RemoteFailure(reason="Malformed JSON response", status_code=response.status_code)
        return parse_remote_result(body, response.status_code)


def create_remote_client() -> RemoteClient:
    """Factory function to create a remote client from the environment."""
    return RemoteClient()
