"""JSON-file key-value store.

Each key lives in its own ``<key>.json`` file as
``{"revision": n, "value": ...}``.  Commits write a temp file and
``os.replace`` it over the old one, so readers only ever see complete
documents.  The revision check and the replace happen while holding an
exclusive ``flock`` on ``<key>.lock``, which serializes commits across
threads and processes; mutators run without the lock held.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import re
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from routedoc.errors import KeyExistsError, KeyNotFoundError, StoreConflictError
from routedoc.store.base import DEFAULT_MAX_RETRIES, Abort, Mutator

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")

# Marker for a file that exists but cannot be decoded.
_CORRUPT = object()


class JsonFileStore:
    """Directory of JSON documents, one per key.

    Args:
        directory: Where the documents live. Created on first write.
        max_retries: Extra attempts an ``update`` gets after losing a race.
    """

    def __init__(self, directory: Path, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._dir = Path(directory)
        self._max_retries = max_retries

    @property
    def directory(self) -> Path:
        return self._dir

    # ── Private helpers ──────────────────────────────────────────

    def _path(self, key: str) -> Path:
        if not _KEY_RE.fullmatch(key):
            raise ValueError(f"Store key must be a plain file name: {key!r}")
        return self._dir / f"{key}.json"

    @contextlib.contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        self._dir.mkdir(parents=True, exist_ok=True)
        lock_path = self._path(key).with_suffix(".lock")
        with open(lock_path, "a+") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read(self, key: str) -> tuple[int, Any] | object | None:
        """Return ``(revision, value)``, ``None`` if absent, or ``_CORRUPT``."""
        path = self._path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(text)
            return int(data["revision"]), data["value"]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Corrupt store entry at %s", path)
            return _CORRUPT

    def _write(self, key: str, revision: int, value: Any) -> None:
        path = self._path(key)
        payload = json.dumps({"revision": revision, "value": value}, indent=2)
        with tempfile.NamedTemporaryFile(
            "w", dir=self._dir, prefix=f".{path.stem}.", suffix=".tmp",
            delete=False, encoding="utf-8",
        ) as tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_path = Path(tmp.name)
        os.replace(tmp_path, path)

    # ── Store primitives ─────────────────────────────────────────

    def get(self, key: str) -> Any | None:
        entry = self._read(key)
        if entry is None or entry is _CORRUPT:
            return None
        return entry[1]

    def create(self, key: str, value: Any) -> None:
        with self._locked(key):
            if self._path(key).exists():
                raise KeyExistsError(key)
            self._write(key, 0, value)
        logger.debug("Created %s", self._path(key))

    def remove(self, key: str) -> None:
        with self._locked(key):
            self._path(key).unlink(missing_ok=True)

    def replace_unreadable(self, key: str, value: Any) -> bool:
        with self._locked(key):
            live = self._read(key)
            if live is None or live is _CORRUPT:
                revision = 0
            elif live[1] is None:
                revision = live[0] + 1
            else:
                return False
            self._write(key, revision, value)
        logger.warning("Replaced unreadable store entry at %s", self._path(key))
        return True

    def update(self, key: str, mutator: Mutator) -> Any:
        for attempt in range(self._max_retries + 1):
            entry = self._read(key)
            if entry is None or entry is _CORRUPT:
                raise KeyNotFoundError(key)
            revision, current = entry

            result = mutator(current)
            if isinstance(result, Abort):
                return result

            with self._locked(key):
                live = self._read(key)
                if live is None or live is _CORRUPT:
                    raise KeyNotFoundError(key)
                if live[0] == revision:
                    self._write(key, revision + 1, result)
                    logger.debug("Committed %r at revision %d", key, revision + 1)
                    return json.loads(json.dumps(result))
            logger.debug("Conflict on %r (attempt %d), retrying", key, attempt + 1)

        raise StoreConflictError(
            f"Update of {key!r} conflicted {self._max_retries + 1} times"
        )
