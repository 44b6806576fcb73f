"""
Tests for the health check endpoint.

This module tests dependency checks for the local store and the remote
endpoint, system metrics, and status reporting.
"""

import json
from unittest.mock import patch

import psutil

from services.health import HealthCheckService
from services.store import LocalStore
from services.sync import SyncCoordinator
from conftest import FailingRedis, StubRemote


class TestHealthCheckEndpoint:
    """Test cases for the /api/healthz endpoint."""

    def test_health_check_success_all_healthy(self, client):
        """Test health check when the store and remote are healthy."""
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = json.loads(response.data)

        # Check HAL structure
        assert '_links' in data
        assert 'self' in data['_links']

        assert data['status'] == 'healthy'
        assert data['service'] == 'ward-compliance-api'
        assert data['version'] == '1.0.0'
        assert 'timestamp' in data

        deps = data['dependencies']
        assert deps['store']['status'] == 'healthy'
        assert deps['store']['persistent'] is True
        assert deps['remote']['status'] == 'healthy'
        assert 'system_metrics' in data
        assert data['sync']['online'] is True

    def test_health_check_degraded_remote_down(self, client, remote):
        """Test an unreachable remote only degrades the service."""
        remote.failure = "HTTP 502"

        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'degraded'
        assert data['dependencies']['remote']['error'] == "HTTP 502"

    def test_health_check_unhealthy_store_down(self, store, remote):
        """Test a store that does not answer makes the service unhealthy."""
        from app import create_app

        app = create_app(
            {'TESTING': True, 'OTEL_ENABLED': False, 'AUTO_START_SYNC': False},
            store=LocalStore(client=FailingRedis(), root_key="test:root"),
            remote=remote
        )
        try:
            response = app.test_client().get('/api/healthz')
        finally:
            app.sync_coordinator.shutdown()

        assert response.status_code == 503
        assert response.get_json()['dependencies']['store']['status'] == 'unhealthy'

    def test_health_check_no_auth_required(self, client):
        assert client.get('/api/healthz').status_code != 401

    def test_app_factory_registers_tagged_routes(self, app):
        paths = app.api_doc['paths']

        assert '/api/healthz' in paths
        assert paths['/api/healthz']['get']['tags'] == ['Health']
        assert '/api/issues' in paths


class TestHealthCheckService:
    """Test cases for the HealthCheckService class."""

    def test_remote_not_configured(self, store):
        sync = SyncCoordinator(store, StubRemote(configured=False))
        try:
            health = HealthCheckService(store, sync).get_comprehensive_health()
        finally:
            sync.shutdown()

        assert health['status'] == 'healthy'
        assert health['dependencies']['remote']['status'] == 'not_configured'

    def test_system_metrics(self, store, sync):
        metrics = HealthCheckService(store, sync)._get_system_metrics()

        assert 'cpu_percent' in metrics
        assert metrics['memory']['total_mb'] > 0
        assert metrics['process']['threads'] >= 1

    @patch('services.health.psutil.virtual_memory')
    def test_system_metrics_error(self, mock_memory, store, sync):
        mock_memory.side_effect = psutil.AccessDenied()

        metrics = HealthCheckService(store, sync)._get_system_metrics()

        assert 'error' in metrics

    def test_response_time_reported(self, store, sync):
        health = HealthCheckService(store, sync).get_comprehensive_health()

        assert isinstance(health['response_time_ms'], float)
