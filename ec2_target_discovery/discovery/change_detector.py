"""State diff engine: detects target changes between discovery cycles."""

from __future__ import annotations

import logging
from collections import Counter

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Tracks target label snapshots and detects changes between polling cycles.

    A snapshot is a multiset of full label sets, so targets are compared by
    everything they carry and duplicates never collapse into one entry.
    """

    def __init__(self) -> None:
        self._previous: Counter[frozenset[tuple[str, str]]] | None = None

    def reset(self) -> None:
        """Clear all stored state (e.g. on SIGHUP)."""
        logger.info("Change detector state reset, next cycle will rewrite all targets")
        self._previous = None

    def detect(self, label_maps: list[dict[str, str]]) -> bool:
        """Compare the current targets against the previous cycle.

        Returns True when this is the first cycle or any target was added,
        removed or relabeled.
        """
        current = Counter(frozenset(labels.items()) for labels in label_maps)
        previous = self._previous
        self._previous = current

        if previous is None:
            logger.info("First cycle: %d targets", len(label_maps))
            return True

        appeared = sum((current - previous).values())
        gone = sum((previous - current).values())

        logger.info(
            "Change detection: %d new or relabeled, %d gone, %d total",
            appeared, gone, len(label_maps),
        )
        return bool(appeared or gone)
