"""
Half-open time interval algebra used by the availability calculator.

  Interval     — a single [start, end) span
  IntervalSet  — sorted, non-overlapping intervals with union / subtract /
                 intersect. Overlapping and touching intervals are merged on
                 construction, so every operation works on a normalised list.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Interval end {self.end} must be after start {self.start}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: 'Interval') -> bool:
        """True if [start, end) shares any instant with other. Touching is not overlapping."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: 'Interval') -> bool:
        return self.start <= other.start and other.end <= self.end

    def padded(self, before: timedelta, after: timedelta = None) -> 'Interval':
        """Grow the interval by `before` on the left and `after` (default: same) on the right."""
        if after is None:
            after = before
        return Interval(self.start - before, self.end + after)


class IntervalSet:
    """Immutable, normalised collection of intervals."""

    __slots__ = ('_items',)

    def __init__(self, intervals: Iterable[Interval] = ()):
        self._items: List[Interval] = _normalise(intervals)

    @classmethod
    def _from_normalised(cls, items: List[Interval]) -> 'IntervalSet':
        obj = cls.__new__(cls)
        obj._items = items
        return obj

    # ── Protocols ─────────────────────────────────────────────────────────────

    def __iter__(self) -> Iterator[Interval]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        spans = ', '.join(f"[{i.start.isoformat()}, {i.end.isoformat()})" for i in self._items)
        return f"IntervalSet({spans})"

    def __or__(self, other: 'IntervalSet') -> 'IntervalSet':
        return self.union(other)

    def __sub__(self, other: 'IntervalSet') -> 'IntervalSet':
        return self.subtract(other)

    def __and__(self, other: 'IntervalSet') -> 'IntervalSet':
        return self.intersect(other)

    # ── Operations ────────────────────────────────────────────────────────────

    def union(self, other: 'IntervalSet') -> 'IntervalSet':
        return IntervalSet([*self._items, *other._items])

    def subtract(self, other: 'IntervalSet') -> 'IntervalSet':
        """Everything in self that is not covered by other."""
        result = []
        cuts = other._items
        j = 0
        for interval in self._items:
            start = interval.start
            # skip cuts that end before this interval starts
            while j < len(cuts) and cuts[j].end <= start:
                j += 1
            k = j
            while k < len(cuts) and cuts[k].start < interval.end:
                cut = cuts[k]
                if cut.start > start:
                    result.append(Interval(start, cut.start))
                start = max(start, cut.end)
                if start >= interval.end:
                    break
                k += 1
            if start < interval.end:
                result.append(Interval(start, interval.end))
        return IntervalSet._from_normalised(result)

    def intersect(self, other: 'IntervalSet') -> 'IntervalSet':
        result = []
        a, b = self._items, other._items
        i = j = 0
        while i < len(a) and j < len(b):
            start = max(a[i].start, b[j].start)
            end = min(a[i].end, b[j].end)
            if start < end:
                result.append(Interval(start, end))
            if a[i].end < b[j].end:
                i += 1
            else:
                j += 1
        return IntervalSet._from_normalised(result)

    def overlaps(self, interval: Interval) -> bool:
        return any(item.overlaps(interval) for item in self._items)

    def clip(self, window: Interval) -> 'IntervalSet':
        """Restrict the set to a single window."""
        return self.intersect(IntervalSet._from_normalised([window]))


def _normalise(intervals: Iterable[Interval]) -> List[Interval]:
    merged: List[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            if interval.end > merged[-1].end:
                merged[-1] = Interval(merged[-1].start, interval.end)
        else:
            merged.append(interval)
    return merged
