"""
Bounded activity log for player-visible messages.
Oldest entries are evicted first; memory stays fixed.
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Tuple
import logging

from ..core.types import ActivityRecord

logger = logging.getLogger(__name__)


@dataclass
class ActivityLogStats:
    """Activity log metrics"""
    records_appended: int = 0
    records_evicted: int = 0


class ActivityLog:
    """
    Append-only ring buffer of ActivityRecord.

    Each record carries a global sequence number so readers can tell
    which entries are new since their last look.
    """

    def __init__(self, maxsize: int = 50):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._records: Deque[ActivityRecord] = deque(maxlen=maxsize)
        self._next_sequence = 0
        self.stats = ActivityLogStats()

    @property
    def maxsize(self) -> int:
        return self._records.maxlen

    def append(self, day: int, minute: int, message: str) -> ActivityRecord:
        record = ActivityRecord(day, minute, message, sequence=self._next_sequence)
        if len(self._records) == self._records.maxlen:
            self.stats.records_evicted += 1
        self._records.append(record)
        self._next_sequence += 1
        self.stats.records_appended += 1
        return record

    def tail(self, n: int) -> Tuple[ActivityRecord, ...]:
        """Most recent n records, oldest first"""
        if n <= 0:
            return ()
        return tuple(self._records)[-n:]

    def since(self, sequence: int) -> List[ActivityRecord]:
        """Records with a sequence number >= sequence still in the buffer"""
        return [r for r in self._records if r.sequence >= sequence]

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))

    def export_state(self) -> dict:
        return {
            'next_sequence': self._next_sequence,
            'records': [
                {'day': r.day, 'minute': r.minute, 'message': r.message, 'sequence': r.sequence}
                for r in self._records
            ]
        }

    def restore_state(self, state: dict):
        self._records.clear()
        for raw in state['records']:
            self._records.append(
                ActivityRecord(int(raw['day']), int(raw['minute']), raw['message'],
                               sequence=int(raw['sequence']))
            )
        self._next_sequence = int(state['next_sequence'])
