# SPDX-License-Identifier: Apache-2.0

"""
Sync coordinator: best-effort push of local writes and upsert-merge pulls.

Pushes run on a background executor and never raise into the caller.
Pulls fetch the full remote snapshot outside the store lock and merge it
inside a store transaction; each pull carries a sequence number and a
response older than the last applied one is discarded.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Optional, Dict, Any, Set
from pydantic import ValidationError
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import Issue, WardRegistration, BonusRequest, StoreRoot
from models.enums import RegistrationStatus
from models.remote import RemoteAction, RemoteFailure, parse_snapshot, RemoteSnapshot
from domain.reviews import apply_registration_approval
from services.store import LocalStore
from services.remote import RemoteClient

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


@dataclass
class SyncStatus:
    """Observed replication state."""
    configured: bool = False
    online: bool = False
    last_ping_at: Optional[datetime] = None
    last_pull_at: Optional[datetime] = None
    last_error: Optional[str] = None
    pushes_sent: int = 0
    pushes_failed: int = 0
    pulls_applied: int = 0
    pulls_discarded: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('last_ping_at', 'last_pull_at'):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class MergeReport:
    """Counts of records touched by one merge."""
    issues_inserted: int = 0
    issues_updated: int = 0
    registrations_inserted: int = 0
    registrations_updated: int = 0
    bonus_requests_inserted: int = 0
    bonus_requests_updated: int = 0
    units_updated: int = 0
    skipped: int = 0


@dataclass
class PullResult:
    """Outcome of one pull."""
    success: bool
    sequence: int
    discarded: bool = False
    report: Optional[MergeReport] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "sequence": self.sequence,
            "discarded": self.discarded,
            "report": asdict(self.report) if self.report else None,
            "error": self.error
        }


def merge_snapshot(root: StoreRoot, snapshot: RemoteSnapshot) -> MergeReport:
    """
    Upsert remote records into the root.

    Remote wins per record for ids present on both sides, remote-only
    records are inserted and local-only records are kept. A registration
    arriving APPROVED that was not APPROVED locally updates its unit
    through the same approval function as a local review.

    Args:
        root: Store root, mutated in place
        snapshot: Parsed ``getAllData`` payload

    Returns:
        MergeReport with per-collection counts
    """
    report = MergeReport()

    for raw in snapshot.issues:
        try:
            issue = Issue.model_validate(raw)
        except ValidationError as e:
            report.skipped += 1
            logger.warning("Skipping malformed remote issue", extra={"record_id": raw.get("id"), "errors": e.error_count()})
            continue
        if issue.id in root.issues:
            report.issues_updated += 1
        else:
            report.issues_inserted += 1
        root.issues[issue.id] = issue

    for raw in snapshot.registrations:
        try:
            registration = WardRegistration.model_validate(raw)
        except ValidationError as e:
            report.skipped += 1
            logger.warning("Skipping malformed remote registration", extra={"record_id": raw.get("id"), "errors": e.error_count()})
            continue
        local = root.registrations.get(registration.id)
        if local is not None:
            report.registrations_updated += 1
        else:
            report.registrations_inserted += 1

        newly_approved = (
            registration.status == RegistrationStatus.APPROVED
            and (local is None or local.status != RegistrationStatus.APPROVED)
        )
        if newly_approved:
            unit = root.users.get(registration.ward_id)
            if unit is not None:
                apply_registration_approval(unit, registration)
                report.units_updated += 1
        root.registrations[registration.id] = registration

    for raw in snapshot.bonus_requests:
        try:
            bonus = BonusRequest.model_validate(raw)
        except ValidationError as e:
            report.skipped += 1
            logger.warning("Skipping malformed remote bonus request", extra={"record_id": raw.get("id"), "errors": e.error_count()})
            continue
        if bonus.id in root.bonus_requests:
            report.bonus_requests_updated += 1
        else:
            report.bonus_requests_inserted += 1
        root.bonus_requests[bonus.id] = bonus

    return report


class SyncCoordinator:
    """
    Coordinates push and pull replication with the remote endpoint.

    The coordinator only talks to the core through ``LocalStore``
    transactions, so it can run on background threads alongside request
    handlers.
    """

    def __init__(self, store: LocalStore, remote: RemoteClient, max_workers: int = 4):
        self.store = store
        self.remote = remote
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync")
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._merge_lock = threading.Lock()
        self._sequence = 0
        self._applied_sequence = 0
        self._status = SyncStatus(configured=remote.is_configured())

    # Push

    def push(self, action: RemoteAction) -> Optional[Future]:
        """
        Send a local mutation to the remote endpoint in the background.

        Returns:
            The pending future, or None when no remote is configured
        """
        if not self.remote.is_configured():
            logger.debug(f"Remote not configured, skipping push of {action.action}")
            return None

        future = self._executor.submit(self._send, action)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _send(self, action: RemoteAction) -> None:
        with tracer.start_as_current_span("sync.push") as span:
            span.set_attribute("sync.action", action.action)
            try:
                result = self.remote.send(action)
            except Exception as e:
                # Push is best-effort; local state stays authoritative
                logger.error(f"Push of {action.action} raised: {str(e)}", exc_info=True)
                result = RemoteFailure(reason=str(e))

            with self._status_lock:
                if result.ok:
                    self._status.pushes_sent += 1
                else:
                    self._status.pushes_failed += 1
                    self._status.last_error = result.reason

            if not result.ok:
                span.set_attribute("sync.result", "failed")
                logger.warning(
                    "Push failed",
                    extra={"action": action.action, "reason": result.reason}
                )
            else:
                span.set_attribute("sync.result", "sent")

    def wait_for_pushes(self, timeout: Optional[float] = None) -> None:
        """Block until pushes submitted so far have finished."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    # Pull

    def _next_sequence(self) -> int:
        with self._status_lock:
            self._sequence += 1
            return self._sequence

    def pull_now(self) -> PullResult:
        """
        Fetch the remote snapshot and merge it into the store.

        Returns only after the merge has been committed (or discarded as
        stale). Network failures are reported in the result, never raised.
        """
        sequence = self._next_sequence()

        with tracer.start_as_current_span("sync.pull") as span:
            span.set_attribute("sync.sequence", sequence)

            result = self.remote.get_all_data()
            if not result.ok:
                self._record_offline(result.reason)
                span.set_attribute("sync.result", "failed")
                return PullResult(success=False, sequence=sequence, error=result.reason)

            snapshot = parse_snapshot(result.data)
            if snapshot is None:
                reason = "Malformed snapshot"
                self._record_offline(reason)
                span.set_attribute("sync.result", "malformed")
                return PullResult(success=False, sequence=sequence, error=reason)

            with self._merge_lock:
                if sequence <= self._applied_sequence:
                    with self._status_lock:
                        self._status.pulls_discarded += 1
                    span.set_attribute("sync.result", "discarded")
                    logger.info(
                        "Discarding stale pull response",
                        extra={"sequence": sequence, "applied_sequence": self._applied_sequence}
                    )
                    return PullResult(success=True, sequence=sequence, discarded=True)

                with self.store.transaction() as root:
                    report = merge_snapshot(root, snapshot)
                self._applied_sequence = sequence

            now = utc_now()
            with self._status_lock:
                self._status.online = True
                self._status.last_pull_at = now
                self._status.last_error = None
                self._status.pulls_applied += 1

            span.set_attributes({
                "sync.result": "applied",
                "sync.issues_inserted": report.issues_inserted,
                "sync.issues_updated": report.issues_updated,
                "sync.skipped": report.skipped
            })
            logger.info("Pull merged", extra={"sequence": sequence, **asdict(report)})
            return PullResult(success=True, sequence=sequence, report=report)

    def pull_in_background(self) -> Future:
        """Schedule a pull without waiting for it."""
        return self._executor.submit(self.pull_now)

    def scheduled_pull(self) -> None:
        """Entry point for the periodic job; failures only update status."""
        if not self.remote.is_configured():
            return
        result = self.pull_now()
        if not result.success:
            logger.info(f"Scheduled pull failed: {result.error}")

    # Connectivity

    def check_connectivity(self) -> SyncStatus:
        """Ping the remote endpoint and update online status without merging."""
        with tracer.start_as_current_span("sync.ping") as span:
            result = self.remote.ping()
            now = utc_now()
            with self._status_lock:
                self._status.last_ping_at = now
                self._status.online = result.ok
                if not result.ok:
                    self._status.last_error = result.reason
            span.set_attribute("sync.online", result.ok)
            return self.get_status()

    def _record_offline(self, reason: str) -> None:
        with self._status_lock:
            self._status.online = False
            self._status.last_error = reason
        logger.warning("Pull failed", extra={"reason": reason})

    def get_status(self) -> SyncStatus:
        with self._status_lock:
            return replace(self._status)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_tasks)
