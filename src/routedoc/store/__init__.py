"""Backing stores for the content collection."""

from routedoc.store.base import DEFAULT_MAX_RETRIES, Abort, KeyValueStore, Mutator
from routedoc.store.jsonfile import JsonFileStore
from routedoc.store.memory import MemoryStore

__all__ = [
    "DEFAULT_MAX_RETRIES",
    "Abort",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Mutator",
]
