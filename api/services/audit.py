# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for append-only action logging inside the store root.
"""

import logging
from datetime import datetime
from typing import List, Optional
from opentelemetry import trace

from models.base import utc_now, epoch_ms
from models.entities import AuditLog, StoreRoot
from services.store import LocalStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuditFilters:
    """Filters for audit log queries."""

    def __init__(
        self,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ):
        self.actor = actor
        self.action = action
        self.target_id = target_id
        self.start_date = start_date
        self.end_date = end_date

    def matches(self, entry: AuditLog) -> bool:
        """Check if an entry passes every set filter."""
        if self.actor and entry.actor != self.actor:
            return False
        if self.action and entry.action != self.action:
            return False
        if self.target_id and entry.target_id != self.target_id:
            return False
        if self.start_date and entry.timestamp < self.start_date:
            return False
        if self.end_date and entry.timestamp > self.end_date:
            return False
        return True


class AuditService:
    """Audit trail stored in the root's ``logs`` list."""

    def __init__(self, store: LocalStore):
        self.store = store

    def record(
        self,
        root: StoreRoot,
        actor: str,
        action: str,
        target_id: str,
        details: str = ""
    ) -> AuditLog:
        """
        Append an audit entry to ``root``.

        Must be called inside the same store transaction as the mutation
        it describes, so the entry and the change commit together.

        Args:
            root: Store root of the open transaction
            actor: Unit ID performing the action
            action: Action name
            target_id: Affected entity ID
            details: Human-readable details

        Returns:
            The appended AuditLog
        """
        now = utc_now()
        entry = AuditLog(
            id=f"log_{epoch_ms(now)}_{len(root.logs) + 1}",
            timestamp=now,
            actor=actor,
            action=action,
            target_id=target_id,
            details=details
        )
        root.logs.append(entry)

        logger.info(
            f"Audit: {action}",
            extra={"actor": actor, "action": action, "target_id": target_id}
        )
        return entry

    def list_logs(self, filters: Optional[AuditFilters] = None, limit: int = 100) -> List[AuditLog]:
        """Most recent matching entries first."""
        with tracer.start_as_current_span("audit.list_logs"):
            filters = filters or AuditFilters()
            root = self.store.get_store()
            matching = [entry for entry in root.logs if filters.matches(entry)]
            matching.reverse()
            return matching[:limit]
