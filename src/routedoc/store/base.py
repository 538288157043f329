"""Key-value store contract.

Stores hold JSON-compatible values under string keys.  ``update`` is an
optimistic transaction: the mutator runs against a private copy of the
current value and the result is committed only if nobody else committed
in between; otherwise the mutator is run again against the newer value.
Mutators therefore must be re-entrant and free of side effects.

A mutator that wants to stop without committing returns an ``Abort``;
the store hands that same ``Abort`` back to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

DEFAULT_MAX_RETRIES = 10


@dataclass(frozen=True, slots=True)
class Abort:
    """Mutator result that cancels the transaction.

    Attributes:
        reason: Arbitrary payload returned to the caller of ``update``.
    """

    reason: Any = None


Mutator = Callable[[Any], Any]


@runtime_checkable
class KeyValueStore(Protocol):
    """Backing store primitives used by the content repository."""

    def get(self, key: str) -> Any | None:
        """Return a copy of the value at ``key``, or ``None`` if absent."""
        ...

    def create(self, key: str, value: Any) -> None:
        """Store ``value`` at ``key``; raise ``KeyExistsError`` if taken."""
        ...

    def remove(self, key: str) -> None:
        """Delete ``key``. Missing keys are ignored."""
        ...

    def replace_unreadable(self, key: str, value: Any) -> bool:
        """Store ``value`` at ``key`` only if the entry is absent or unreadable.

        An entry is unreadable when ``get`` would report it as ``None``.
        The check and the write happen under the store lock, so a readable
        entry committed by someone else in between is never overwritten.
        Returns whether ``value`` was written.
        """
        ...

    def update(self, key: str, mutator: Mutator) -> Any:
        """Atomically replace the value at ``key`` with ``mutator(value)``.

        Returns the committed value, or the ``Abort`` the mutator
        returned.  Raises ``KeyNotFoundError`` if ``key`` is absent and
        ``StoreConflictError`` when retries are exhausted.
        """
        ...
