from __future__ import annotations

from bisect import bisect_left, bisect_right
from operator import attrgetter
from typing import List, Protocol, Sequence, TypeVar


class Timestamped(Protocol):
    timestamp: float


S = TypeVar("S", bound=Timestamped)

_ts = attrgetter("timestamp")


def filter_by_time_range(samples: Sequence[S], start: float, end: float) -> List[S]:
    """Return the samples with ``start <= timestamp <= end``.

    Two binary searches over ``samples``, which must be sorted ascending by
    timestamp. Unsorted input yields some contiguous slice rather than an
    error; ordering is the caller's responsibility.
    """
    if not samples or start > end:
        return []
    lo = bisect_left(samples, start, key=_ts)
    hi = bisect_right(samples, end, lo=lo, key=_ts)
    if lo >= hi:
        return []
    return list(samples[lo:hi])
