"""In-process key-value store with optimistic updates."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from routedoc.errors import KeyExistsError, KeyNotFoundError, StoreConflictError
from routedoc.store.base import DEFAULT_MAX_RETRIES, Abort, Mutator

logger = logging.getLogger(__name__)


class MemoryStore:
    """Dict-backed store.

    Each entry carries a revision number that is bumped on every commit.
    The lock only guards snapshot and commit; mutators run outside it.
    Values are deep-copied on the way in and out, so no caller ever
    holds a live reference to stored state.
    """

    def __init__(self, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._entries: dict[str, tuple[int, Any]] = {}
        self._lock = threading.Lock()
        self._max_retries = max_retries

    def _snapshot(self, key: str) -> tuple[int, Any] | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        revision, value = entry
        return revision, copy.deepcopy(value)

    def get(self, key: str) -> Any | None:
        entry = self._snapshot(key)
        return None if entry is None else entry[1]

    def create(self, key: str, value: Any) -> None:
        stored = copy.deepcopy(value)
        with self._lock:
            if key in self._entries:
                raise KeyExistsError(key)
            self._entries[key] = (0, stored)
        logger.debug("Created %r", key)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def replace_unreadable(self, key: str, value: Any) -> bool:
        stored = copy.deepcopy(value)
        with self._lock:
            live = self._entries.get(key)
            if live is not None and live[1] is not None:
                return False
            self._entries[key] = (0 if live is None else live[0] + 1, stored)
        logger.debug("Replaced unreadable %r", key)
        return True

    def update(self, key: str, mutator: Mutator) -> Any:
        for attempt in range(self._max_retries + 1):
            entry = self._snapshot(key)
            if entry is None:
                raise KeyNotFoundError(key)
            revision, current = entry

            result = mutator(current)
            if isinstance(result, Abort):
                return result
            stored = copy.deepcopy(result)

            with self._lock:
                live = self._entries.get(key)
                if live is not None and live[0] == revision:
                    self._entries[key] = (revision + 1, stored)
                    logger.debug("Committed %r at revision %d", key, revision + 1)
                    return copy.deepcopy(stored)
            if live is None:
                raise KeyNotFoundError(key)
            logger.debug("Conflict on %r (attempt %d), retrying", key, attempt + 1)

        raise StoreConflictError(
            f"Update of {key!r} conflicted {self._max_retries + 1} times"
        )

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
