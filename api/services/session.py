# SPDX-License-Identifier: Apache-2.0

"""
Session service for email + one-time code login.

Issues HS256 session tokens with PyJWT and records every issued session in
the store, so a token stays valid only while its record exists. The most
recent session is remembered and can be restored on startup.
"""

import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple
import jwt
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import SessionContext, SessionRecord, Unit
from models.responses import LoginChallenge
from middleware.error_handler import AuthenticationException
from services.store import LocalStore
from services.sync import SyncCoordinator

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SEC = 12 * 60 * 60
DEFAULT_OTP_CODE = "123456"


class SessionService:
    """Login, token resolution and logout."""

    def __init__(
        self,
        store: LocalStore,
        sync: Optional[SyncCoordinator],
        secret: str,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SEC,
        otp_code: str = DEFAULT_OTP_CODE,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize the session service.

        Args:
            store: Local store holding units and session records
            sync: Coordinator used to refresh data after login
            secret: HS256 signing secret
            ttl_seconds: Session lifetime
            otp_code: Accepted one-time code
        """
        self.store = store
        self.sync = sync
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.otp_code = otp_code
        self.clock = clock
        self.algorithm = "HS256"

    def _find_unit(self, email: str) -> Unit:
        unit = self.store.get_store().find_unit_by_email(email)
        if unit is None:
            raise AuthenticationException("No unit is registered with this email")
        return unit

    def login(self, email: str) -> LoginChallenge:
        """
        First login step: match the email to a unit.

        Raises:
            AuthenticationException: Email is unknown
        """
        with tracer.start_as_current_span("session.login") as span:
            unit = self._find_unit(email)
            span.set_attribute("unit.id", unit.id)
            logger.info("Login challenge issued", extra={"unit_id": unit.id})
            return LoginChallenge(email=unit.email, unit_name=unit.unit_name)

    def verify_otp(self, email: str, otp: str) -> Tuple[SessionContext, str]:
        """
        Second login step: check the one-time code and open a session.

        Returns:
            Tuple of (session context, signed token)

        Raises:
            AuthenticationException: Unknown email or wrong code
        """
        with tracer.start_as_current_span("session.verify_otp") as span:
            unit = self._find_unit(email)
            span.set_attribute("unit.id", unit.id)

            if not hmac.compare_digest(otp.strip().encode("utf-8"), self.otp_code.encode("utf-8")):
                span.set_attribute("session.result", "invalid_otp")
                logger.warning("Invalid one-time code", extra={"unit_id": unit.id})
                raise AuthenticationException("Invalid one-time code")

            now = self.clock()
            expires_at = now + timedelta(seconds=self.ttl_seconds)
            token_id = uuid.uuid4().hex
            payload = {
                "sub": unit.id,
                "email": unit.email,
                "role": unit.role,
                "jti": token_id,
                "iat": now,
                "exp": expires_at
            }
            token = jwt.encode(payload, self.secret, algorithm=self.algorithm)

            with self.store.transaction() as root:
                for stale_id in [
                    record.token_id for record in root.sessions.values()
                    if record.expires_at is not None and record.expires_at <= now
                ]:
                    del root.sessions[stale_id]
                root.sessions[token_id] = SessionRecord(
                    token_id=token_id,
                    unit_id=unit.id,
                    email=unit.email,
                    issued_at=now,
                    expires_at=expires_at
                )
                root.last_session_id = token_id

            span.set_attribute("session.result", "success")
            logger.info("Session opened", extra={"unit_id": unit.id, "token_id": token_id})

        if self.sync is not None and self.sync.remote.is_configured():
            self.sync.pull_in_background()

        return SessionContext.for_unit(unit, token_id), token

    def resolve_token(self, token: str) -> SessionContext:
        """
        Turn a bearer token into a session context.

        Raises:
            AuthenticationException: Token invalid, expired or revoked
        """
        try:
            # Expiry is checked against the service clock below
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub", "jti"], "verify_exp": False}
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {str(e)}")
            raise AuthenticationException("Invalid session token")

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError):
            raise AuthenticationException("Invalid session token")
        if expires_at <= self.clock():
            raise AuthenticationException("Session has expired")

        root = self.store.get_store()
        record = root.sessions.get(payload["jti"])
        if record is None or record.unit_id != payload["sub"]:
            raise AuthenticationException("Session has been closed")

        unit = root.users.get(record.unit_id)
        if unit is None:
            raise AuthenticationException("Session unit no longer exists")

        return SessionContext.for_unit(unit, record.token_id)

    def restore_last_session(self) -> Optional[SessionContext]:
        """Context of the most recent unexpired session, if any."""
        root = self.store.get_store()
        if not root.last_session_id:
            return None

        record = root.sessions.get(root.last_session_id)
        if record is None:
            return None
        if record.expires_at is not None and record.expires_at <= self.clock():
            return None

        unit = root.users.get(record.unit_id)
        if unit is None:
            return None
        return SessionContext.for_unit(unit, record.token_id)

    def logout(self, session: SessionContext) -> bool:
        """Revoke the session; returns False if it was already gone."""
        with self.store.transaction() as root:
            removed = root.sessions.pop(session.token_id, None) is not None
            if root.last_session_id == session.token_id:
                root.last_session_id = None

        logger.info("Session closed", extra={"unit_id": session.unit_id, "revoked": removed})
        return removed
