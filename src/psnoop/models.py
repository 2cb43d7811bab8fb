"""Data models for psnoop."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")

UNKNOWN = -1
UNREADABLE_CMD = "???"


@dataclass(slots=True, frozen=True)
class ProcessEvent:
    """A newly observed process, with unavailable fields set to sentinels."""

    uid: int  # UNKNOWN if the owner could not be read
    pid: int
    ppid: int  # UNKNOWN if disabled or unreadable
    cmd: str  # UNREADABLE_CMD if the command line could not be read

    @property
    def display_cmd(self) -> str:
        """The trimmed command with undecodable bytes shown as U+FFFD."""
        return self.cmd.strip().encode("utf-8", errors="surrogateescape").decode(
            "utf-8", errors="replace"
        )

    def __str__(self) -> str:
        uid = "???" if self.uid == UNKNOWN else str(self.uid)
        cmd = self.display_cmd
        if self.ppid == UNKNOWN:
            return f"UID={uid:<5} PID={self.pid:<6} CMD={cmd}"
        return f"UID={uid:<5} PID={self.pid:<6} PPID={self.ppid:<6} CMD={cmd}"


def _as_frozenset(values: Iterable[str]) -> frozenset[str]:
    if isinstance(values, str):
        return frozenset((values,))
    return frozenset(values)


@dataclass(slots=True, frozen=True)
class ScannerConfig:
    """
    Immutable scanner configuration.

    Attributes:
        enable_ppid: Resolve parent pids (one extra read per process).
        max_cmd_length: Maximum number of command line bytes to read.
        cgroup_filter: Exclude processes whose cgroup file contains this string.
        user_filter: Exclude processes owned by these usernames.
        cmd_filter: Exclude processes whose command contains any of these strings.
        report_existing: Report processes already running at the first scan.
    """

    enable_ppid: bool = False
    max_cmd_length: int = 2048
    cgroup_filter: str = ""
    user_filter: frozenset[str] = frozenset()
    cmd_filter: frozenset[str] = frozenset()
    report_existing: bool = True

    def __post_init__(self) -> None:
        if self.max_cmd_length <= 0:
            raise ValueError(f"max_cmd_length must be positive, got {self.max_cmd_length}")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "user_filter", _as_frozenset(self.user_filter))
        object.__setattr__(self, "cmd_filter", _as_frozenset(self.cmd_filter))


@dataclass(slots=True, frozen=True)
class Lookup(Generic[T]):
    """
    Result of reading one process attribute.

    A lookup is present (``value`` set), absent (nothing set, the attribute
    was not requested) or failed (``error`` set).
    """

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """True if the attribute was read successfully."""
        return self.error is None and self.value is not None

    @property
    def failed(self) -> bool:
        """True if reading the attribute raised an error."""
        return self.error is not None

    @classmethod
    def of(cls, value: T) -> "Lookup[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Lookup[T]":
        return cls(error=error)


@dataclass(slots=True, frozen=True)
class ProcessAttributes:
    """Everything extracted for one pid, before collapsing to sentinels."""

    pid: int
    uid: Lookup[int] = field(default_factory=Lookup)
    ppid: Lookup[int] = field(default_factory=Lookup)
    cmdline: Lookup[str] = field(default_factory=Lookup)

    @property
    def command(self) -> str:
        """Command line, or the unreadable sentinel."""
        return self.cmdline.value if self.cmdline.ok else UNREADABLE_CMD

    def to_event(self) -> ProcessEvent:
        """Collapse the lookups into a ProcessEvent."""
        return ProcessEvent(
            uid=self.uid.value if self.uid.ok else UNKNOWN,
            pid=self.pid,
            ppid=self.ppid.value if self.ppid.ok else UNKNOWN,
            cmd=self.command,
        )
