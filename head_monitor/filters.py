"""
Head Monitor - Deduplication Filter.

Reconnects and reorganisations make the node repeat heads or send
older ones. The filter keeps the highest level accepted so far and
lets through only strictly higher levels. The very first head is
always accepted and sets the baseline.
"""

import logging

from node_adapters import HeadNotification


logger = logging.getLogger(__name__)


class HeadFilter:
    """Accepts heads with strictly increasing levels."""

    def __init__(self) -> None:
        self._last_level = 0
        self._seen_any = False
        self._dropped = 0

    @property
    def last_level(self) -> int:
        return self._last_level

    @property
    def seen_any(self) -> bool:
        return self._seen_any

    @property
    def dropped(self) -> int:
        return self._dropped

    def accept(self, head: HeadNotification) -> bool:
        """Return True if the head should be resolved and dispatched."""
        if self._seen_any and head.level <= self._last_level:
            self._dropped += 1
            logger.debug(
                f"Dropping head {head.hash} at level {head.level} "
                f"(last accepted {self._last_level})"
            )
            return False

        self._seen_any = True
        self._last_level = head.level
        return True

    def reset(self) -> None:
        self._last_level = 0
        self._seen_any = False
