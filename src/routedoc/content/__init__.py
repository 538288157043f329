"""Content layer — markdown records, route keys, storage and updates."""

from routedoc.content.coordinator import UpdateCoordinator
from routedoc.content.markdown import MarkdownProcessor, build_renderer, default_processor
from routedoc.content.models import ContentCollection, ContentRecord, UpdateError
from routedoc.content.repository import ContentRepository
from routedoc.content.routes import normalize_route, routes_match

__all__ = [
    "ContentCollection",
    "ContentRecord",
    "ContentRepository",
    "MarkdownProcessor",
    "UpdateCoordinator",
    "UpdateError",
    "build_renderer",
    "default_processor",
    "normalize_route",
    "routes_match",
]
