"""Content service — the operations exposed to callers.

``parse_content``, ``update_content`` and ``get_content_by_route``
require a credential, validated before the repository is touched.
``load_content_by_route`` and ``list_content_meta`` are public.
"""

from __future__ import annotations

import logging
from typing import Any

from routedoc.auth import Authenticator, JWTAuthenticator
from routedoc.config import RoutedocConfig
from routedoc.content.coordinator import UpdateCoordinator
from routedoc.content.markdown import MarkdownProcessor, default_processor
from routedoc.content.models import ContentRecord, UpdateError
from routedoc.content.repository import ContentRepository
from routedoc.errors import ConfigError
from routedoc.store.base import KeyValueStore
from routedoc.store.jsonfile import JsonFileStore
from routedoc.store.memory import MemoryStore

logger = logging.getLogger(__name__)


def open_store(config: RoutedocConfig) -> KeyValueStore:
    """Build the backing store named by ``config.store.backend``."""
    if config.store.backend == "memory":
        return MemoryStore(max_retries=config.store.max_retries)
    return JsonFileStore(config.store_path, max_retries=config.store.max_retries)


class ContentService:
    """Authenticated facade over the repository and update coordinator."""

    def __init__(
        self,
        repository: ContentRepository,
        authenticator: Authenticator,
        processor: MarkdownProcessor | None = None,
        coordinator: UpdateCoordinator | None = None,
    ) -> None:
        self._repository = repository
        self._authenticator = authenticator
        self._processor = processor if processor is not None else default_processor()
        self._coordinator = (
            coordinator
            if coordinator is not None
            else UpdateCoordinator(repository, self._processor)
        )

    @classmethod
    def from_config(cls, config: RoutedocConfig) -> ContentService:
        """Wire the default store, repository and JWT authenticator."""
        if not config.auth.is_configured:
            raise ConfigError("auth.secret is not set (ROUTEDOC_AUTH_SECRET)")
        repository = ContentRepository(open_store(config), key=config.store.collection_key)
        authenticator = JWTAuthenticator(config.auth.secret, audience=config.auth.audience)
        return cls(repository, authenticator)

    @property
    def repository(self) -> ContentRepository:
        return self._repository

    # ── Authenticated operations ─────────────────────────────────

    def parse_content(self, credential: str | None, raw: str) -> ContentRecord:
        """Render ``raw`` without storing it."""
        self._authenticator.validate(credential)
        return self._processor.parse(raw)

    def update_content(
        self,
        credential: str | None,
        content: str,
        expected_prior_raw: str | None = None,
    ) -> UpdateError | None:
        """Create or replace the record at the route ``content`` declares.

        Pass the ``raw`` last read from the store as ``expected_prior_raw``
        to reject the write if someone else changed it since; pass ``None``
        to write unconditionally.
        """
        self._authenticator.validate(credential)
        return self._coordinator.update(content, expected_prior_raw)

    def get_content_by_route(self, credential: str | None, route: str) -> ContentRecord:
        """Return the full stored record, including its raw markdown."""
        self._authenticator.validate(credential)
        return self._repository.find_by_route(route)

    # ── Public operations ────────────────────────────────────────

    def load_content_by_route(self, route: str) -> str:
        """Return the rendered HTML for ``route``. Case does not matter."""
        return self._repository.find_by_route(route).rendered

    def list_content_meta(self) -> list[dict[str, Any]]:
        """Return the frontmatter attributes of every stored record."""
        return self._repository.list_meta()
