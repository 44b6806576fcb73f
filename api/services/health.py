"""
Health Check Service

Reports the state of the local store, the remote sheet endpoint and basic
process metrics.
"""

import os
import time
import psutil
from typing import Dict, Any
from opentelemetry import trace

from models.base import utc_now
from services.store import LocalStore
from services.sync import SyncCoordinator

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for dependency and process health monitoring."""

    def __init__(self, store: LocalStore, sync: SyncCoordinator):
        self.store = store
        self.sync = sync
        self.service_version = "1.0.0"

    def get_comprehensive_health(self) -> Dict[str, Any]:
        """Get health status including the store, remote endpoint and metrics."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            store_health = self._check_store_health()
            remote_health = self._check_remote_health()

            # Remote is optional: the app keeps working offline
            overall_status = store_health["status"]
            if overall_status == "healthy" and remote_health["status"] == "unhealthy":
                overall_status = "degraded"

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            health_data = {
                "status": overall_status,
                "service": "ward-compliance-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": utc_now().isoformat(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "store": store_health,
                    "remote": remote_health
                },
                "sync": self.sync.get_status().to_dict(),
                "system_metrics": self._get_system_metrics()
            }

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.store_status": store_health["status"],
                "health.remote_status": remote_health["status"]
            })

            return health_data

    def _check_store_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.store_check") as span:
            start_time = time.time()
            if not self.store.ping():
                span.set_attribute("store.status", "unhealthy")
                return {
                    "status": "unhealthy",
                    "error": "Store did not answer ping",
                    "last_check": utc_now().isoformat()
                }

            response_time = round((time.time() - start_time) * 1000, 2)
            span.set_attributes({"store.status": "healthy", "store.response_time_ms": response_time})
            return {
                "status": "healthy",
                "response_time_ms": response_time,
                "persistent": self.store.is_persistent(),
                "last_check": utc_now().isoformat()
            }

    def _check_remote_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.remote_check") as span:
            if not self.sync.remote.is_configured():
                span.set_attribute("remote.status", "not_configured")
                return {"status": "not_configured", "last_check": utc_now().isoformat()}

            start_time = time.time()
            status = self.sync.check_connectivity()
            response_time = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "remote.status": "healthy" if status.online else "unhealthy",
                "remote.response_time_ms": response_time
            })
            health_info = {
                "status": "healthy" if status.online else "unhealthy",
                "response_time_ms": response_time,
                "last_check": utc_now().isoformat()
            }
            if not status.online:
                health_info["error"] = status.last_error
            return health_info

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic process and host metrics."""
        try:
            process = psutil.Process()
            memory = psutil.virtual_memory()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "process": {
                    "rss_mb": round(process.memory_info().rss / 1024 / 1024, 2),
                    "threads": process.num_threads()
                },
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except psutil.Error as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }
