"""
Ward Compliance API - Flask Application Entry Point

Builds the Flask application with OpenAPI 3.0 support, wires the local
store, remote sync and domain services, and registers the routes.
"""

import os
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from opentelemetry import trace
import logging

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.auth import AuthMiddleware
from services.hal import create_hal_formatter
from services.store import LocalStore
from services.remote import RemoteClient
from services.sync import SyncCoordinator
from services.scheduler import init_scheduler
from services.audit import AuditService
from services.issues import IssueService
from services.registrations import RegistrationService
from services.bonuses import BonusService
from services.session import SessionService, DEFAULT_SESSION_TTL_SEC, DEFAULT_OTP_CODE
from services.dashboard import DashboardService
from services.health import HealthCheckService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

info = Info(
    title="Ward Compliance API",
    version="1.0.0",
    description="Violation tracking, SLA review workflow and competitive compliance scoring"
)

tags = [
    Tag(name="Health", description="System health and status")
]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'REDIS_URL': os.getenv('REDIS_URL', 'redis://localhost:6379'),
        'STORE_ROOT_KEY': os.getenv('STORE_ROOT_KEY', 'ward_compliance:root'),
        'REMOTE_API_URL': os.getenv('REMOTE_API_URL', ''),
        'REMOTE_TIMEOUT_SEC': float(os.getenv('REMOTE_TIMEOUT_SEC', '10')),
        'SYNC_INTERVAL_SEC': int(os.getenv('SYNC_INTERVAL_SEC', '15')),
        'AUTO_START_SYNC': _env_flag('AUTO_START_SYNC', 'true'),
        'SESSION_SECRET': os.getenv('SESSION_SECRET', 'dev-session-secret'),
        'SESSION_TTL_SEC': int(os.getenv('SESSION_TTL_SEC', str(DEFAULT_SESSION_TTL_SEC))),
        'LOGIN_OTP_CODE': os.getenv('LOGIN_OTP_CODE', DEFAULT_OTP_CODE),
        'ARCHIVE_MIN_PAYLOAD_BYTES': int(os.getenv('ARCHIVE_MIN_PAYLOAD_BYTES', '4096')),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'true'),
    }


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    store: Optional[LocalStore] = None,
    remote: Optional[RemoteClient] = None
) -> OpenAPI:
    """
    Application factory.

    Args:
        config_overrides: Values replacing the environment configuration
        store: Pre-built store (tests pass one over a Redis double)
        remote: Pre-built remote client

    Returns:
        Configured Flask application
    """
    config = load_config()
    config.update(config_overrides or {})

    setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'] and not config.get('TESTING'))

    app = OpenAPI(__name__, info=info)
    app.config.update(config)

    add_observability_middleware(app, instrument=config['OTEL_ENABLED'] and not config.get('TESTING'))

    if config['ENVIRONMENT'] == 'production' and config['SESSION_SECRET'] == 'dev-session-secret':
        logger.warning("SESSION_SECRET is not set; using the development secret")

    # Core components
    store = store or LocalStore(
        redis_url=config['REDIS_URL'],
        root_key=config['STORE_ROOT_KEY'],
        archive_min_payload_bytes=config['ARCHIVE_MIN_PAYLOAD_BYTES']
    )
    remote = remote or RemoteClient(config['REMOTE_API_URL'], config['REMOTE_TIMEOUT_SEC'])
    sync_coordinator = SyncCoordinator(store, remote)

    # Domain services
    audit_service = AuditService(store)
    session_service = SessionService(
        store,
        sync_coordinator,
        config['SESSION_SECRET'],
        ttl_seconds=config['SESSION_TTL_SEC'],
        otp_code=config['LOGIN_OTP_CODE']
    )

    hal_formatter = create_hal_formatter(config['BASE_URL'])
    ErrorHandlerMiddleware(app, hal_formatter)
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.store = store
    app.remote_client = remote
    app.sync_coordinator = sync_coordinator
    app.audit_service = audit_service
    app.issue_service = IssueService(store, sync_coordinator, audit_service)
    app.registration_service = RegistrationService(store, sync_coordinator, audit_service)
    app.bonus_service = BonusService(store, sync_coordinator, audit_service)
    app.session_service = session_service
    app.dashboard_service = DashboardService(store)
    app.health_service = HealthCheckService(store, sync_coordinator)
    app.hal_formatter = hal_formatter
    app.auth_middleware = AuthMiddleware(session_service)

    # Register routes
    from routes.auth import auth_bp
    from routes.issues import issues_bp
    from routes.reviews import registrations_bp, bonuses_bp
    from routes.dashboard import dashboard_bp
    from routes.sync import sync_bp, storage_bp
    from routes.audit import audit_bp

    for blueprint in (auth_bp, issues_bp, registrations_bp, bonuses_bp, dashboard_bp, sync_bp, storage_bp, audit_bp):
        app.register_api(blueprint)

    @app.get('/api/healthz', tags=tags)
    def health_check():
        """Health check with store, remote endpoint and process metrics."""
        health_data = app.health_service.get_comprehensive_health()
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return jsonify(hal_formatter.format_resource(health_data, "/api/healthz")), status_code

    if not config.get('TESTING'):
        store.init()
        restored = session_service.restore_last_session()
        if restored is not None:
            logger.info("Last session restored", extra={"unit_id": restored.unit_id})
            if remote.is_configured():
                sync_coordinator.pull_in_background()

    app.sync_scheduler = init_scheduler(app, sync_coordinator)

    logger.info(
        "Application created",
        extra={"environment": config['ENVIRONMENT'], "remote_configured": remote.is_configured()}
    )
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG'],
        use_reloader=False
    )
