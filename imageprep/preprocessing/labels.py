"""
Label registry - maps category labels to stable class indices.

Indices are assigned on first sight and never change afterwards. A registry
seeded from a previous manifest keeps the indices of that run, so repeated
runs over a growing dataset agree on every label they share.
"""

import logging
import threading
from typing import Dict, Iterable, Optional

from .manifest import ManifestRecord

logger = logging.getLogger(__name__)


class LabelRegistry:
    """
    Thread-safe, append-only label -> class index mapping.

    Example:
        registry = LabelRegistry.from_records(read_manifest("training_data.json"))
        idx = registry.get_or_assign("cats")
    """

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._lock = threading.Lock()
        self._indices: Dict[str, int] = {}
        self._taken = set()
        self._next = 0
        for label, index in (initial or {}).items():
            self._seed(label, index)

    @classmethod
    def from_records(cls, records: Iterable[ManifestRecord]) -> "LabelRegistry":
        """Seed from manifest records. The first record for a label wins."""
        registry = cls()
        for record in records:
            registry._seed(record.labels, record.class_index)
        return registry

    def _seed(self, label: str, index: int) -> None:
        if index < 0:
            raise ValueError(f"Class index for {label!r} must be non-negative, got {index}")
        if label in self._indices:
            if self._indices[label] != index:
                logger.debug(
                    f"Ignoring index {index} for {label!r}; already seeded as {self._indices[label]}"
                )
            return
        if index in self._taken:
            logger.warning(
                f"Class index {index} for {label!r} is already used by another label; "
                f"{label!r} will get a new index"
            )
            return
        self._indices[label] = index
        self._taken.add(index)
        self._next = max(self._next, index + 1)

    def get_or_assign(self, label: str) -> int:
        """
        Return the index for ``label``, assigning the next free one if it is new.

        The lookup and the assignment happen under one lock, so concurrent
        callers can never hand out the same index twice.
        """
        with self._lock:
            index = self._indices.get(label)
            if index is None:
                index = self._next
                self._indices[label] = index
                self._taken.add(index)
                self._next += 1
                logger.debug(f"Assigned class index {index} to label {label!r}")
            return index

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current mapping."""
        with self._lock:
            return dict(self._indices)

    def __len__(self) -> int:
        with self._lock:
            return len(self._indices)
