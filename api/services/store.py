# SPDX-License-Identifier: Apache-2.0

"""
Local persistent store backed by Redis.

The whole application state lives in one JSON root under a single key.
Every read-modify-write cycle goes through ``LocalStore.transaction()``,
which holds a re-entrant lock from fetch to save so concurrent writers
(request handlers, the pull job, manual pulls) are serialized.
"""

import os
import json
import hashlib
import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Optional, Dict, Any, Iterator, List
import redis
from pydantic import ValidationError
from opentelemetry import trace
import logging

from models.base import utc_now
from models.entities import StoreRoot, Unit, MediaItem
from domain.catalog import build_seed_units
from middleware.error_handler import StorageException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_ROOT_KEY = "ward_compliance:root"
DEFAULT_ARCHIVE_MIN_PAYLOAD_BYTES = 4096


class LocalStore:
    """
    Single-root store with serialized transactions.

    Provides lazy initialization with unit seeding, whole-root reads and
    writes, storage permanence checks, usage reporting and archiving of
    old evidence payloads.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        root_key: Optional[str] = None,
        archive_min_payload_bytes: Optional[int] = None
    ):
        """
        Initialize the store.

        Args:
            client: Pre-built Redis client (tests pass a double)
            redis_url: Redis connection URL (redis://host:port)
            root_key: Key holding the JSON root
            archive_min_payload_bytes: Smallest data URL reduced by archiving
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379")
        self.root_key = root_key or os.getenv("STORE_ROOT_KEY", DEFAULT_ROOT_KEY)
        self.archive_min_payload_bytes = archive_min_payload_bytes or int(
            os.getenv("ARCHIVE_MIN_PAYLOAD_BYTES", DEFAULT_ARCHIVE_MIN_PAYLOAD_BYTES)
        )
        self.client = client if client is not None else redis.from_url(self.redis_url, decode_responses=True)
        self._lock = threading.RLock()

    # Raw access

    def _read(self) -> Optional[StoreRoot]:
        with tracer.start_as_current_span("store.read") as span:
            span.set_attribute("store.key", self.root_key)
            try:
                raw = self.client.get(self.root_key)
            except redis.RedisError as e:
                logger.error(f"Store read failed: {str(e)}")
                raise StorageException(f"Failed to read store: {str(e)}") from e

            if raw is None:
                span.set_attribute("store.result", "missing")
                return None

            try:
                return StoreRoot.model_validate(json.loads(raw))
            except (json.JSONDecodeError, TypeError, ValidationError) as e:
                span.set_attribute("store.result", "corrupt")
                logger.error(f"Store root is corrupt: {str(e)}")
                raise StorageException("Stored data is corrupt") from e

    def _write(self, root: StoreRoot) -> None:
        with tracer.start_as_current_span("store.write") as span:
            root.meta.last_updated = utc_now()
            root.meta.revision += 1
            span.set_attributes({
                "store.key": self.root_key,
                "store.revision": root.meta.revision
            })
            try:
                self.client.set(self.root_key, root.model_dump_json(by_alias=True, exclude_none=True))
            except redis.RedisError as e:
                logger.error(f"Store write failed: {str(e)}")
                raise StorageException(f"Failed to save store: {str(e)}") from e

    def _request_persistence(self) -> bool:
        """Ask Redis for append-only persistence; managed hosts may refuse."""
        try:
            current = self.client.config_get('appendonly')
            if current.get('appendonly') == 'yes':
                return True
            self.client.config_set('appendonly', 'yes')
            return True
        except redis.RedisError as e:
            logger.warning(f"Storage permanence not granted: {str(e)}")
            return False

    # Public operations

    def init(self) -> StoreRoot:
        """
        Ensure the root exists and holds every seed unit.

        Existing units are never overwritten. The permanence request outcome
        is recorded in ``meta.is_persistent``.

        Returns:
            The current root
        """
        with tracer.start_as_current_span("store.init") as span, self._lock:
            root = self._read()
            created = root is None
            if created:
                root = StoreRoot()

            seeded = 0
            for unit in build_seed_units():
                if unit.id not in root.users:
                    root.users[unit.id] = unit
                    seeded += 1

            persistent = self._request_persistence()
            changed = created or seeded > 0 or root.meta.is_persistent != persistent
            root.meta.is_persistent = persistent

            if changed:
                self._write(root)

            span.set_attributes({
                "store.created": created,
                "store.seeded_units": seeded,
                "store.persistent": persistent
            })
            logger.info(
                "Store initialized",
                extra={"root_created": created, "seeded_units": seeded, "persistent": persistent}
            )
            return root

    def get_store(self) -> StoreRoot:
        """Return a fresh copy of the root, initializing it if missing."""
        with self._lock:
            root = self._read()
            if root is None:
                return self.init()
            return root

    def save(self, root: StoreRoot) -> None:
        """Persist the whole root, stamping ``lastUpdated``."""
        with self._lock:
            self._write(root)

    @contextmanager
    def transaction(self) -> Iterator[StoreRoot]:
        """
        Serialized fetch-mutate-save cycle.

        The root is saved when the block exits normally and changed it;
        nothing is saved if it raises. Do not nest transactions: an inner
        save would be overwritten by the outer one.
        """
        with self._lock:
            root = self._read()
            if root is None:
                root = self.init()
            baseline = root.model_dump_json(by_alias=True, exclude_none=True)
            yield root
            if root.model_dump_json(by_alias=True, exclude_none=True) != baseline:
                self._write(root)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Store ping failed: {str(e)}")
            return False

    def is_persistent(self) -> bool:
        """Check whether append-only persistence is currently enabled."""
        try:
            current = self.client.config_get('appendonly')
            return current.get('appendonly') == 'yes'
        except redis.RedisError as e:
            logger.warning(f"Could not read persistence setting: {str(e)}")
            return False

    def get_storage_usage(self) -> Dict[str, Any]:
        """
        Report memory used by the root record.

        Returns:
            Dictionary with bytes, a megabyte string and the persistence flag
        """
        try:
            used = self.client.memory_usage(self.root_key) or 0
        except redis.RedisError as e:
            raise StorageException(f"Failed to read storage usage: {str(e)}") from e

        return {
            "bytes": used,
            "megabytes": f"{used / (1024 * 1024):.2f}",
            "isPersistent": self.is_persistent()
        }

    def archive_old_data(self, age_days: int) -> int:
        """
        Reduce evidence payloads of issues older than ``age_days``.

        Inline ``data:`` URLs at or above the size threshold are replaced by
        an empty URL plus their digest and original size. Status, points and
        ids are untouched.

        Returns:
            Number of issues whose evidence was reduced
        """
        with tracer.start_as_current_span("store.archive_old_data") as span:
            cutoff = utc_now() - timedelta(days=age_days)
            count = 0

            with self.transaction() as root:
                for issue in root.issues.values():
                    if issue.created_time >= cutoff:
                        continue
                    reduced = self._reduce_media(issue.evidence) + self._reduce_media(issue.report_evidence)
                    if reduced:
                        count += 1

            span.set_attributes({"archive.age_days": age_days, "archive.count": count})
            logger.info("Archived old evidence", extra={"age_days": age_days, "issues_affected": count})
            return count

    def _reduce_media(self, items: List[MediaItem]) -> int:
        reduced = 0
        for item in items:
            if item.archived or not item.url.startswith('data:'):
                continue
            if len(item.url) < self.archive_min_payload_bytes:
                continue
            item.digest = hashlib.sha256(item.url.encode('utf-8')).hexdigest()
            item.original_size = len(item.url)
            item.url = ""
            item.archived = True
            reduced += 1
        return reduced

    def find_unit(self, unit_id: str) -> Optional[Unit]:
        return self.get_store().users.get(unit_id)


def create_local_store() -> LocalStore:
    """
    Factory function to create a store instance from the environment.

    Returns:
        LocalStore instance
    """
    return LocalStore()
