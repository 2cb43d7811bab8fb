"""Tracking of known pids across scans."""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ScanDelta:
    """Pids that appeared and disappeared between two snapshots."""

    new: frozenset[int]
    exited: frozenset[int]


class ProcessIndex:
    """
    The set of pids seen at the last completed scan.

    The snapshot is only ever replaced as a whole through commit(), so it
    never holds a partially updated state. A pid that exits and is later
    reused shows up as new again.
    """

    def __init__(self, seed: Iterable[int] | None = None) -> None:
        self._pids: frozenset[int] | None = frozenset(seed) if seed is not None else None

    @property
    def is_populated(self) -> bool:
        """True once a snapshot has been committed or seeded."""
        return self._pids is not None

    @property
    def pids(self) -> frozenset[int]:
        return self._pids or frozenset()

    def diff(self, current: Iterable[int]) -> ScanDelta:
        """Compare a snapshot with the committed one without changing it."""
        current = frozenset(current)
        previous = self.pids
        return ScanDelta(new=current - previous, exited=previous - current)

    def commit(self, current: Iterable[int]) -> None:
        """Replace the committed snapshot."""
        self._pids = frozenset(current)

    def __len__(self) -> int:
        return len(self.pids)

    def __contains__(self, pid: object) -> bool:
        return pid in self.pids
