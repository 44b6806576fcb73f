# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides the application exception hierarchy and Flask error handlers.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Malformed input or an illegal workflow transition."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for role gating failures."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Unknown resource id, raised only at the HTTP edge."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConnectivityException(CustomException):
    """Remote endpoint unreachable during a manual pull or ping."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


class StorageException(CustomException):
    """Backing store failed to open or commit."""

    def __init__(self, message: str):
        super().__init__(message, 500, "storage-error")


class ErrorHandlerMiddleware:
    """Handlers for framework-level HTTP errors and unexpected exceptions."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            if isinstance(error, HTTPException):
                return self.handle_http_error(error)
            return self.handle_unexpected_error(error)

    def handle_http_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """
        Handle werkzeug HTTP errors (404 routes, 405 methods, bad JSON).

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response dict, status code)
        """
        status = error.code or 500
        error_type = (error.name or "error").lower().replace(' ', '-')
        detail = str(error.description) if error.description else error.name

        logger.warning(
            f"HTTP error: {error.name}",
            extra={
                "error_type": error_type,
                "status_code": status,
                "path": request.path,
                "method": request.method
            }
        )

        response = self.hal_formatter.builder.build_error_response(
            error_type, error.name, status, detail, request.path
        )
        return jsonify(response), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """Handle exceptions not caught by specific handlers."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details in production
            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            return jsonify(self.hal_formatter.format_server_error(detail, request.path)), 500


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, ValidationException):
                error_response = hal_formatter.format_validation_error(
                    error.message,
                    request.path,
                    error.validation_errors
                )
            elif isinstance(error, AuthenticationException):
                error_response = hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                error_response = hal_formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                error_response = hal_formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, ConnectivityException):
                error_response = hal_formatter.format_unavailable_error(error.message, request.path)
            else:
                error_response = hal_formatter.format_server_error(
                    error.message, request.path, error.error_type
                )

            return jsonify(error_response), error.status_code
