"""Per-channel deduplication of user-facing failure notifications.

A *failure episode* is a run of consecutive failures on one channel key
(``"alerts.fetch"``, ``"tiles.search"`` ...). Only the first failure of
an episode reaches the user; ``report_success`` ends the episode so the
next failure is surfaced again. Polling loops and retries therefore
never produce notification storms.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("geoalert.sync.notification_gate")


def log_notifier(channel_key: str, message: str) -> None:
    """Default sink: write the notification to the log."""
    logger.warning("Notification | channel=%s | %s", channel_key, message)


class NotificationGate:
    """Suppresses repeat failure notifications within an episode.

    Args:
        notifier: Called as ``notifier(channel_key, message)`` for every
            notification that passes the gate. Defaults to ``log_notifier``.
    """

    def __init__(self, notifier: Callable[[str, str], None] | None = None) -> None:
        self._notifier = notifier or log_notifier
        self._failing: set[str] = set()
        self._lock = threading.Lock()

    def report_once(self, channel_key: str, message: str) -> bool:
        """Record a failure; notify only if it opens a new episode.

        Returns:
            ``True`` if the notification was emitted.
        """
        with self._lock:
            if channel_key in self._failing:
                logger.debug("Notification suppressed | channel=%s | %s", channel_key, message)
                return False
            self._failing.add(channel_key)
        self._notifier(channel_key, message)
        return True

    def report_success(self, channel_key: str) -> None:
        """Close the current failure episode for *channel_key*."""
        with self._lock:
            self._failing.discard(channel_key)

    def is_suppressed(self, channel_key: str) -> bool:
        """Whether the next failure on *channel_key* would be suppressed."""
        with self._lock:
            return channel_key in self._failing
