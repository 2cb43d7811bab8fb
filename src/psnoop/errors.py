"""Exception types raised by psnoop."""


class ScannerError(Exception):
    """Base class for all psnoop errors."""


class ProcessVanishedError(ScannerError):
    """A per-process pseudo-file could not be read, usually because the process exited."""

    def __init__(self, pid: int, path: str) -> None:
        super().__init__(f"cannot read {path} (pid {pid} probably exited)")
        self.pid = pid
        self.path = path


class CorruptRecordError(ScannerError):
    """A /proc/<pid>/stat record did not have the expected layout."""

    def __init__(self, pid: int, record: str) -> None:
        super().__init__(f"corrupt stat record for pid {pid}: {record!r}")
        self.pid = pid
        self.record = record


class UserLookupError(ScannerError):
    """A numeric uid has no matching user entry."""

    def __init__(self, uid: int) -> None:
        super().__init__(f"no user entry for uid {uid}")
        self.uid = uid


class ProcessTableError(ScannerError):
    """The process table itself could not be enumerated."""
