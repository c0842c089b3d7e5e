"""In-memory entity store synchronized with a durable key-value port.

The store holds four collections (courses, assignments, enrollments,
progress records).  It is the only owner of that state:

  - services write through commit(), never by touching the dicts
  - queries read a StoreSnapshot, which is immutable
  - load()/refresh() pull from the port; save()/commit() push to it

Multi-process consistency is polling-based: another process writing a
slot becomes visible here on the next refresh(), so staleness is bounded
by the refresh interval chosen by the caller.

Within one process, request handlers run on a threadpool.  A service
write holds transaction() from its first read to its commit, and
load()/refresh()/commit() take the same re-entrant lock, so a
check-then-write never interleaves with another write.

Until one load has succeeded the held collections say nothing about the
port, and committing them would overwrite it.  transaction() and
commit() therefore load first and raise StoreNotLoadedError if the port
is still unreachable.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from lms.core.metrics import STORE_LOADS, STORE_MALFORMED, STORE_REFRESHES, STORE_WRITES
from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.progress import ProgressRecord
from lms.repos.kv_repo import KeyValueRepo
from lms.store.codec import CollectionKind, MalformedPersistedDataError, decode, encode

logger = logging.getLogger(__name__)

ProgressKey = tuple[str, str]


class StoreNotLoadedError(RuntimeError):
    """The port could not be read, so writes are refused."""


@dataclass(frozen=True)
class StoreSnapshot:
    courses: Mapping[str, Course]
    assignments: Mapping[str, Assignment]
    enrollments: Mapping[str, Enrollment]
    progress: Mapping[ProgressKey, ProgressRecord]


class EntityStore:
    def __init__(self, repo: KeyValueRepo) -> None:
        self._repo = repo
        self._collections: dict[CollectionKind, dict[Any, Any]] = {
            kind: {} for kind in CollectionKind
        }
        self._lock = threading.RLock()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """True once a load() or refresh() has read the whole port."""
        return self._loaded

    def ensure_loaded(self) -> None:
        """Load from the port unless a load already succeeded."""
        with self._lock:
            if self._loaded:
                return
            try:
                self.load()
            except Exception as e:
                raise StoreNotLoadedError(f"store not loaded: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        """Hold the write lock across a read-check-commit sequence."""
        with self._lock:
            self.ensure_loaded()
            yield self

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def courses(self) -> Mapping[str, Course]:
        return MappingProxyType(self._collections[CollectionKind.COURSES])

    @property
    def assignments(self) -> Mapping[str, Assignment]:
        return MappingProxyType(self._collections[CollectionKind.ASSIGNMENTS])

    @property
    def enrollments(self) -> Mapping[str, Enrollment]:
        return MappingProxyType(self._collections[CollectionKind.ENROLLMENTS])

    @property
    def progress(self) -> Mapping[ProgressKey, ProgressRecord]:
        return MappingProxyType(self._collections[CollectionKind.PROGRESS])

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            courses=self.courses,
            assignments=self.assignments,
            enrollments=self.enrollments,
            progress=self.progress,
        )

    # ------------------------------------------------------------------
    # Port synchronization
    # ------------------------------------------------------------------

    def _read(self, kind: CollectionKind) -> dict[Any, Any]:
        raw = self._repo.get(kind.value)
        if raw is None:
            STORE_LOADS.labels(collection=kind.value, result="missing").inc()
            return {}
        try:
            collection = decode(kind, raw)
        except MalformedPersistedDataError as e:
            STORE_LOADS.labels(collection=kind.value, result="malformed").inc()
            STORE_MALFORMED.labels(collection=kind.value).inc()
            logger.warning(
                "Replacing %s with an empty collection: %s",
                kind.value,
                e.reason,
                extra={"collection": kind.value},
            )
            return {}
        STORE_LOADS.labels(collection=kind.value, result="ok").inc()
        return collection

    def _read_all(self) -> dict[CollectionKind, dict[Any, Any]]:
        return {kind: self._read(kind) for kind in CollectionKind}

    def load(self) -> None:
        """Replace all four collections with what the port holds.

        Missing or malformed slots become empty collections.  Port I/O
        errors propagate before anything in memory is replaced.
        """
        with self._lock:
            fresh = self._read_all()
            self._collections = fresh
            self._loaded = True
        logger.info(
            "Store loaded  courses=%d assignments=%d enrollments=%d progress=%d",
            len(fresh[CollectionKind.COURSES]),
            len(fresh[CollectionKind.ASSIGNMENTS]),
            len(fresh[CollectionKind.ENROLLMENTS]),
            len(fresh[CollectionKind.PROGRESS]),
        )

    def save(self, kind: CollectionKind, collection: Mapping[Any, Any]) -> None:
        """Write one collection to the port.  Does not touch memory."""
        try:
            self._repo.set(kind.value, encode(kind, collection))
        except Exception:
            STORE_WRITES.labels(collection=kind.value, result="error").inc()
            raise
        STORE_WRITES.labels(collection=kind.value, result="ok").inc()
        logger.debug(
            "Saved %s (%d items)",
            kind.value,
            len(collection),
            extra={"collection": kind.value},
        )

    def commit(self, changes: Mapping[CollectionKind, Mapping[Any, Any]]) -> None:
        """Persist several collections, then swap them into memory together.

        If any write fails, the kinds already written are restored in
        the port from the held state and the error is re-raised; memory
        is left as it was.  Raises StoreNotLoadedError when the port has
        never been read.
        """
        with self._lock:
            self.ensure_loaded()
            written: list[CollectionKind] = []
            try:
                for kind, collection in changes.items():
                    self.save(kind, collection)
                    written.append(kind)
            except Exception:
                logger.exception(
                    "Commit failed after %d of %d writes; restoring",
                    len(written),
                    len(changes),
                )
                for kind in written:
                    self.save(kind, self._collections[kind])
                raise

            for kind, collection in changes.items():
                self._collections[kind] = dict(collection)

    def refresh(self) -> set[CollectionKind]:
        """Reload from the port, replacing only collections that changed.

        Returns the changed kinds; an empty set means nothing visible
        changed.  Comparison is deep equality including order.
        """
        with self._lock:
            fresh = self._read_all()
            changed: set[CollectionKind] = set()
            for kind, collection in fresh.items():
                if list(collection.items()) != list(self._collections[kind].items()):
                    self._collections[kind] = collection
                    changed.add(kind)
            self._loaded = True

        STORE_REFRESHES.labels(result="changed" if changed else "unchanged").inc()
        if changed:
            logger.info(
                "Store refreshed  changed=%s",
                sorted(k.value for k in changed),
            )
        return changed
