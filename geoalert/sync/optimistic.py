"""Optimistic mutation helper.

Applies a change to a locally owned entity before the remote side
confirms it, then either keeps it (remote success) or restores the prior
value (remote failure). Parameterised over key and entity type so any
store that owns a ``key → entity`` mapping can reuse it.

Rules:
- At most one mutation per key is in flight; a second ``run`` on the
  same key blocks until the first settles.
- While a mutation is in flight the owner reports every authoritative
  value it sees for the key (snapshot or push event) through
  ``record_authoritative``, even when the local optimistic value ranks
  above it. A later failure restores ``prefer(prior, recorded)`` rather
  than the prior value, so arrival order does not change the outcome.
- There is no mid-flight abort: the remote call always runs to completion.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Hashable

K = TypeVar("K", bound="Hashable")
V = TypeVar("V")

logger = logging.getLogger("geoalert.sync.optimistic")


def _newer(_older: V, newer: V) -> V:
    return newer


class OptimisticMutator(Generic[K, V]):
    """Transactional local-then-remote mutation over a keyed collection.

    Args:
        condition: The owner's mutation lock. ``read`` and ``write`` are
            only ever called while it is held.
        read: Return the current value for a key (raise if unknown).
        write: Install a value for a key.
        on_change: Called without the lock after every local write
            (apply or rollback), e.g. to notify observers.
        prefer: Picks the value to keep from ``(older, newer)``. Used to
            fold recorded authoritative values and to choose the rollback
            target. Defaults to the newer value.
    """

    def __init__(
        self,
        condition: threading.Condition,
        read: Callable[[K], V],
        write: Callable[[K, V], None],
        *,
        on_change: Callable[[], None] | None = None,
        prefer: Callable[[V, V], V] | None = None,
    ) -> None:
        self._cond = condition
        self._read = read
        self._write = write
        self._on_change = on_change
        self._prefer = prefer or _newer
        self._priors: dict[K, V] = {}
        self._authoritative: dict[K, V] = {}

    def is_pending(self, key: K) -> bool:
        """Whether a mutation on *key* is in flight. Caller holds the lock."""
        return key in self._priors

    def pending_keys(self) -> frozenset[K]:
        """Keys with a mutation in flight. Caller holds the lock."""
        return frozenset(self._priors)

    def prior(self, key: K) -> V | None:
        """Value *key* held before the in-flight mutation, if any. Caller holds the lock."""
        return self._priors.get(key)

    def record_authoritative(self, key: K, value: V) -> None:
        """Record a server-confirmed *value* for *key* seen mid-flight.

        Caller holds the lock. No-op when nothing is pending for *key*.
        """
        if key not in self._priors:
            return
        seen = self._authoritative.get(key)
        self._authoritative[key] = value if seen is None else self._prefer(seen, value)

    def run(
        self,
        key: K,
        transform: Callable[[V], V],
        remote: Callable[[V], object],
    ) -> V:
        """Apply *transform* locally, call *remote*, roll back on failure.

        Args:
            key: Entity key.
            transform: Pure function from the current value to the new one.
                Exceptions propagate before anything is written.
            remote: Confirms the change remotely; any exception triggers
                rollback and is re-raised.

        Returns:
            The entity's value after the mutation settled.
        """
        with self._cond:
            self._cond.wait_for(lambda: key not in self._priors)
            prior = self._read(key)
            updated = transform(prior)
            self._priors[key] = prior
            self._write(key, updated)
        self._changed()

        try:
            remote(updated)
        except Exception:
            with self._cond:
                seen = self._authoritative.get(key)
                restored = prior if seen is None else self._prefer(prior, seen)
                self._write(key, restored)
                self._settle(key)
            if seen is None:
                logger.info("Optimistic mutation rolled back | key=%s", key)
            else:
                logger.info("Optimistic mutation rolled back to server value | key=%s", key)
            self._changed()
            raise

        with self._cond:
            self._settle(key)
            return self._read(key)

    def _settle(self, key: K) -> None:
        self._priors.pop(key, None)
        self._authoritative.pop(key, None)
        self._cond.notify_all()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
