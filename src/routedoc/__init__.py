"""routedoc — markdown content keyed by route, with optimistic updates."""

__version__ = "0.1.0"
