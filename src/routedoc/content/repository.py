"""Content repository — the single owner of the content collection.

The whole collection is one document in the backing store under a
well-known key.  Reads load a fresh copy; writes go exclusively through
``mutate``, which runs inside the store's atomic update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from routedoc.content.models import ContentCollection, ContentRecord, UpdateError
from routedoc.content.routes import normalize_route
from routedoc.errors import KeyExistsError, RouteNotFoundError, StoreError
from routedoc.store.base import Abort, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_KEY = "content"

_INIT_ATTEMPTS = 3

Mutation = Callable[[ContentCollection], ContentCollection | UpdateError]


class ContentRepository:
    """Load, look up, list and mutate the stored content collection.

    Args:
        store: Backing key-value store.
        key: Store key holding the collection document.
    """

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_COLLECTION_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    # ── Private helpers ──────────────────────────────────────────

    def _initialize(self) -> dict[str, Any]:
        """Create the empty collection, exactly once across racing callers.

        ``create`` is conditional, so only one caller wins; the others
        read back the winner's document.  An entry that exists but cannot
        be read is stale or corrupt; the store replaces it only if it is
        still unreadable under its lock, so a collection another caller
        populated in the meantime is kept.
        """
        for _ in range(_INIT_ATTEMPTS):
            try:
                self._store.create(self._key, {})
            except KeyExistsError:
                existing = self._store.get(self._key)
                if existing is not None:
                    return existing
                if self._store.replace_unreadable(self._key, {}):
                    logger.warning("Replaced unreadable collection at %r", self._key)
                    return {}
                continue
            logger.info("Created empty content collection at %r", self._key)
            return {}
        raise StoreError(f"Could not initialize collection at {self._key!r}")

    def _load_document(self) -> dict[str, Any]:
        document = self._store.get(self._key)
        if document is None:
            document = self._initialize()
        return document

    # ── Read operations ──────────────────────────────────────────

    def load(self) -> ContentCollection:
        """Return a private copy of the collection, creating it if absent."""
        return ContentCollection.from_document(self._load_document())

    def find_by_route(self, route: str) -> ContentRecord:
        """Return the first record whose declared route matches ``route``.

        Raises:
            RouteNotFoundError: no record matches.
        """
        target = normalize_route(route)
        for record in self.load().records.values():
            declared = record.attributes.get("route")
            if declared is not None and normalize_route(declared) == target:
                return record
        raise RouteNotFoundError(route)

    def list_meta(self) -> list[dict[str, Any]]:
        """Return every record's frontmatter attributes."""
        return [dict(record.attributes) for record in self.load().records.values()]

    # ── Write operations ─────────────────────────────────────────

    def mutate(self, mutation: Mutation) -> UpdateError | None:
        """Apply ``mutation`` to the collection atomically.

        ``mutation`` may run several times if other writers commit in
        between; it must only depend on the collection it is given.
        Returning an ``UpdateError`` leaves the stored collection
        untouched and the error is returned here.
        """
        self._load_document()

        def mutator(document: dict[str, Any] | None) -> dict[str, Any] | Abort:
            result = mutation(ContentCollection.from_document(document))
            if isinstance(result, UpdateError):
                return Abort(result)
            return result.to_document()

        outcome = self._store.update(self._key, mutator)
        if isinstance(outcome, Abort):
            return outcome.reason
        return None
