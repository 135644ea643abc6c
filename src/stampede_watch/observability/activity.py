"""
Activity Log
============

Bounded, most-recent-first history of person-count changes.

Rules:
    - Append only when the count differs from the newest record
    - Capacity is fixed; the oldest record is dropped silently
    - The stored tuple is replaced on every append, never mutated in place,
      so a snapshot handed to a reader can't change under it
"""

import logging
import time
from typing import Optional, Tuple

from stampede_watch.models.alert import ActivityRecord


logger = logging.getLogger(__name__)


class ActivityLog:
    """
    Change-triggered recent-history list.

    Attributes:
        capacity: Maximum number of records kept
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._records: Tuple[ActivityRecord, ...] = ()

    def record(self, count: int, timestamp: Optional[float] = None) -> bool:
        """
        Offer a count sample.

        Returns:
            True if a record was appended, False if the count was unchanged
        """
        if self._records and self._records[0].count == count:
            return False

        entry = ActivityRecord(
            timestamp=timestamp if timestamp is not None else time.time(),
            count=count,
        )
        self._records = ((entry,) + self._records)[: self.capacity]
        return True

    def snapshot(self) -> Tuple[ActivityRecord, ...]:
        """Records, newest first."""
        return self._records

    @property
    def latest(self) -> Optional[ActivityRecord]:
        return self._records[0] if self._records else None

    def clear(self) -> None:
        self._records = ()

    def __len__(self) -> int:
        return len(self._records)
