"""
Counter store: the single owner of the counter collection.

The store keeps every counter in memory and mirrors each change to one
JSON file before acknowledging it.  Mutations are serialised by a lock
and work copy‑on‑write: a new tuple of records is built, written to
disk atomically and only then published by a single reference
assignment.  A failed write therefore leaves both the in‑memory view
and the file exactly as they were, and readers never need the lock
because they only ever see a complete snapshot.
"""

from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Iterable, List, Set, Tuple, Union

from pydantic import ValidationError

from countdown_api.app.core.exceptions import CorruptStore, NotFound, PersistenceError
from countdown_api.app.core.storage import (
    backup_file,
    read_json,
    remove_stale_temp_files,
    resolve_path,
    write_json_atomic,
)
from countdown_api.app.schemas.counter import Counter, utc_now, validate

logger = logging.getLogger(__name__)


class CounterStore:
    """In‑memory counter collection backed by an atomically rewritten file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = resolve_path(str(path))
        self._counters: Tuple[Counter, ...] = ()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    def load(self, start_empty_on_corrupt: bool = False) -> List[Counter]:
        """Read the persisted collection, replacing whatever is in memory.

        A missing file means an empty collection.  A file that cannot be
        decoded or read raises ``CorruptStore`` unless ``start_empty_on_corrupt``
        is set, in which case the file is moved aside to a timestamped
        backup and the store starts empty.  Leftover temporary files from
        an interrupted write are removed first.
        """
        with self._lock:
            remove_stale_temp_files(self.path)
            try:
                counters = self._read()
            except CorruptStore as exc:
                if not start_empty_on_corrupt:
                    raise
                backup = backup_file(self.path)
                logger.warning("%s; moved it to %s and starting with no counters", exc, backup)
                counters = []
            self._counters = tuple(counters)
        logger.info("Loaded %d counters from %s", len(counters), self.path)
        return list(counters)

    def _read(self) -> List[Counter]:
        try:
            data = read_json(self.path)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            raise CorruptStore(str(self.path), str(exc)) from exc
        if not isinstance(data, list):
            raise CorruptStore(str(self.path), "expected a JSON array of counters")

        counters: List[Counter] = []
        seen: Set[str] = set()
        for index, item in enumerate(data):
            try:
                counter = Counter.model_validate(item)
            except ValidationError as exc:
                raise CorruptStore(
                    str(self.path), f"entry {index} is not a valid counter ({exc.error_count()} errors)"
                ) from exc
            if counter.id in seen:
                raise CorruptStore(str(self.path), f"duplicate counter id {counter.id}")
            seen.add(counter.id)
            counters.append(counter)
        return counters

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self) -> List[Counter]:
        """Return all counters in insertion order."""
        return list(self._counters)

    def get(self, counter_id: str) -> Counter:
        for counter in self._counters:
            if counter.id == counter_id:
                return counter
        raise NotFound(counter_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, title: Any, target: Any) -> Counter:
        """Validate, append and persist a new counter, then return it."""
        title, target = validate(title, target)
        with self._lock:
            current = self._counters
            counter = Counter(
                id=self._new_id(c.id for c in current),
                title=title,
                target=target,
                created_at=utc_now(),
            )
            self._commit(current + (counter,))
        logger.info("Created counter %s", counter.id)
        return counter

    def update(self, counter_id: str, title: Any, target: Any) -> Counter:
        """Replace the title and target of an existing counter.

        ``id`` and ``created_at`` are preserved.  Raises ``NotFound`` for
        an unknown id before looking at the new values.
        """
        with self._lock:
            current = self._counters
            index = self._index_of(current, counter_id)
            title, target = validate(title, target)
            updated = current[index].model_copy(update={"title": title, "target": target})
            self._commit(current[:index] + (updated,) + current[index + 1:])
        logger.info("Updated counter %s", counter_id)
        return updated

    def delete(self, counter_id: str) -> None:
        with self._lock:
            current = self._counters
            index = self._index_of(current, counter_id)
            self._commit(current[:index] + current[index + 1:])
        logger.info("Deleted counter %s", counter_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _index_of(counters: Tuple[Counter, ...], counter_id: str) -> int:
        for index, counter in enumerate(counters):
            if counter.id == counter_id:
                return index
        raise NotFound(counter_id)

    @staticmethod
    def _new_id(taken: Iterable[str]) -> str:
        taken = set(taken)
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in taken:
                return candidate

    def _commit(self, counters: Tuple[Counter, ...]) -> None:
        # Caller holds the lock.  Nothing is published unless the write succeeds.
        try:
            write_json_atomic(self.path, [c.model_dump() for c in counters])
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to persist %d counters to %s", len(counters), self.path, exc_info=True)
            raise PersistenceError(f"Failed to persist counters: {exc}") from exc
        self._counters = counters
