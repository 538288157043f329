"""Update coordinator — optimistic-concurrency writes of content.

An update parses the submitted markdown, derives its route, and applies
a guarded replacement of the record at that route inside one atomic
store transaction.  Every failure comes back as an ``UpdateError``
value; nothing in the error taxonomy escapes ``update``.
"""

from __future__ import annotations

import logging

from routedoc.content.markdown import MarkdownProcessor, default_processor
from routedoc.content.models import ContentCollection, ContentRecord, UpdateError
from routedoc.content.repository import ContentRepository, Mutation
from routedoc.content.routes import normalize_route
from routedoc.errors import ContentError, ErrorCode

logger = logging.getLogger(__name__)

MISSING_ROUTE_MESSAGE = 'Content: must contain "route" field in frontmatter'


def _changed_message(key: str) -> str:
    return f'Content at route: "{key}" has been modified since reading'


def replace_record(
    record: ContentRecord, key: str | None, expected_prior_raw: str | None
) -> Mutation:
    """Build the mutation that stores ``record`` under ``key``.

    The mutation is re-entrant: it only reads the collection it is
    handed and returns either the next collection or an ``UpdateError``.

    Args:
        record: Freshly parsed content to store.
        key: The normalized route of ``record``, or ``None`` when its
            frontmatter declares no route.
        expected_prior_raw: The ``raw`` the caller last saw at this
            route, or ``None`` to create/overwrite unconditionally.
    """

    def mutation(collection: ContentCollection) -> ContentCollection | UpdateError:
        if key is None:
            return UpdateError(
                code=ErrorCode.CONTENT_MISSING_FIELD,
                message=MISSING_ROUTE_MESSAGE,
            )

        if expected_prior_raw is not None:
            existing = collection.records.get(key)
            if existing is None or existing.raw != expected_prior_raw:
                return UpdateError(
                    code=ErrorCode.CONTENT_HAS_CHANGED,
                    message=_changed_message(key),
                )

        return collection.with_record(key, record)

    return mutation


class UpdateCoordinator:
    """Runs the parse → normalize → guarded-replace update protocol.

    Args:
        repository: Owner of the stored collection.
        processor: Markdown processor; defaults to the shared pipeline.
    """

    def __init__(
        self,
        repository: ContentRepository,
        processor: MarkdownProcessor | None = None,
    ) -> None:
        self._repository = repository
        self._processor = processor if processor is not None else default_processor()

    def update(self, new_content: str, expected_prior_raw: str | None = None) -> UpdateError | None:
        """Store ``new_content`` at the route its frontmatter declares.

        Returns ``None`` on success.  Callers wanting the stored record
        re-fetch it by route.
        """
        try:
            record = self._processor.parse(new_content)
        except ContentError as exc:
            return UpdateError(code=exc.code, message=exc.message)

        route = record.attributes.get("route")
        key = normalize_route(route) if route is not None else None

        try:
            error = self._repository.mutate(replace_record(record, key, expected_prior_raw))
        except Exception as exc:
            logger.exception("Unexpected failure updating content")
            return UpdateError(code=ErrorCode.UNKNOWN_ERROR, message=str(exc))

        if error is not None:
            logger.info("Update rejected: %s", error.code)
            return error

        logger.debug("Stored content at %r", key)
        return None
