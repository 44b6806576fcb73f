# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for bearer session tokens.

Resolves the ``Authorization`` header into a ``SessionContext`` through the
session service and hands it explicitly to the route function.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Callable
from opentelemetry import trace
import logging

from models.entities import SessionContext
from models.enums import Role
from middleware.error_handler import AuthenticationException, AuthorizationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    Session token middleware for Flask applications.

    Handles token extraction and session context resolution for protected
    endpoints.
    """

    def __init__(self, session_service):
        """
        Initialize the authentication middleware.

        Args:
            session_service: Service resolving tokens into session contexts
        """
        self.session_service = session_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract the session token from request headers.

        Returns:
            Token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()
        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def authenticate(self) -> SessionContext:
        """
        Resolve the current request's session.

        Raises:
            AuthenticationException: Missing, invalid, expired or revoked token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            try:
                session = self.session_service.resolve_token(token)
            except AuthenticationException:
                span.set_attribute("auth.result", "invalid_token")
                raise

            g.session_context = session
            span.set_attributes({
                "auth.result": "success",
                "unit.id": session.unit_id,
                "unit.role": session.role
            })
            logger.debug("Authentication successful", extra={"unit_id": session.unit_id})
            return session


def require_auth(f: Callable) -> Callable:
    """Decorator passing the authenticated ``SessionContext`` as first argument."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session = current_app.auth_middleware.authenticate()
        return f(session, *args, **kwargs)
    return decorated_function


def require_role(*roles: Role) -> Callable:
    """
    Decorator requiring an authenticated session with one of ``roles``.

    Args:
        roles: Accepted roles

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            session = current_app.auth_middleware.authenticate()
            if not session.has_role(*roles):
                logger.warning(
                    "Authorization failed: role not allowed",
                    extra={
                        "unit_id": session.unit_id,
                        "unit_role": session.role,
                        "required_roles": [str(role.value) for role in roles]
                    }
                )
                raise AuthorizationException(
                    f"This operation requires one of: {', '.join(role.value for role in roles)}"
                )
            return f(session, *args, **kwargs)
        return decorated_function
    return decorator
