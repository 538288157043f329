"""Markdown processing — frontmatter extraction and HTML rendering.

Raw markdown goes through two stages:

1. The leading YAML frontmatter block is split off and loaded into the
   record's ``attributes``.
2. The remaining body is parsed by markdown-it into a token stream, the
   anchors plugin injects a slug ``id`` into every heading and wraps it
   with a self-link, and the stream is serialized to HTML.

The markdown-it instance is configured once by ``build_renderer()`` and
shared through ``default_processor()``; nothing is configured per call.
"""

from __future__ import annotations

import functools
import logging
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler
from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError

from routedoc.content.models import ContentRecord
from routedoc.errors import MalformedContentError, RenderFailureError

logger = logging.getLogger(__name__)

PERMALINK_SYMBOL = "#"

_FRONTMATTER = YAMLHandler()
_ATTRIBUTES = TypeAdapter(dict[str, Any])


def build_renderer() -> MarkdownIt:
    """Create the markdown-it pipeline used for every document."""
    md = MarkdownIt("commonmark")
    md.use(
        anchors_plugin,
        min_level=1,
        max_level=6,
        permalink=True,
        permalinkBefore=True,
        permalinkSymbol=PERMALINK_SYMBOL,
    )
    return md


def split_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """Split ``raw`` into its frontmatter mapping and body.

    Text without a leading ``---`` block (or with an unterminated one)
    has no frontmatter: the whole input is the body.

    Raises:
        MalformedContentError: the block is not valid YAML, is not a
            mapping, or holds a value with no JSON form.
    """
    if not _FRONTMATTER.detect(raw):
        return {}, raw

    try:
        block, body = _FRONTMATTER.split(raw)
    except ValueError:
        return {}, raw

    try:
        metadata = _FRONTMATTER.load(block)
    except yaml.YAMLError as exc:
        raise MalformedContentError(f"Content: invalid frontmatter: {exc}") from exc

    if metadata is None:
        return {}, body
    if not isinstance(metadata, dict):
        raise MalformedContentError("Content: frontmatter must be a mapping")

    # Dates and other YAML scalars are kept in their JSON form so a parsed
    # record compares equal to the same record read back from the store.
    try:
        attributes = _ATTRIBUTES.dump_python(metadata, mode="json")
    except (PydanticSerializationError, UnicodeDecodeError, ValueError) as exc:
        raise MalformedContentError(
            f"Content: frontmatter values must be JSON-compatible: {exc}"
        ) from exc
    return attributes, body


class MarkdownProcessor:
    """Turns raw markdown into a ``ContentRecord``.

    Args:
        renderer: A configured markdown-it instance. Defaults to a fresh
            ``build_renderer()`` pipeline.
    """

    def __init__(self, renderer: MarkdownIt | None = None) -> None:
        self._md = renderer if renderer is not None else build_renderer()

    def render(self, body: str) -> str:
        """Render a markdown body (no frontmatter) to HTML."""
        env: dict[str, Any] = {}
        try:
            tokens = self._md.parse(body, env)
            return self._md.renderer.render(tokens, self._md.options, env)
        except Exception as exc:
            logger.warning("Markdown pipeline failed: %s", exc)
            raise RenderFailureError(f"Content: failed to render markdown: {exc}") from exc

    def parse(self, raw: str) -> ContentRecord:
        """Extract frontmatter, render the body, and keep the raw input.

        Raises:
            MalformedContentError: invalid frontmatter block.
            RenderFailureError: the markdown pipeline raised.
        """
        attributes, body = split_frontmatter(raw)
        rendered = self.render(body)
        return ContentRecord(raw=raw, attributes=attributes, rendered=rendered)


@functools.cache
def default_processor() -> MarkdownProcessor:
    """The process-wide processor, built on first use."""
    return MarkdownProcessor()
