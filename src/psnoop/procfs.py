"""Access to the /proc pseudo-filesystem."""

import os
import pwd
from typing import Protocol

import psutil

from psnoop.errors import (
    CorruptRecordError,
    ProcessTableError,
    ProcessVanishedError,
    UserLookupError,
)

PROC_ROOT = "/proc"


def decode_proc_text(raw: bytes) -> str:
    """
    Decode pseudo-file contents without losing bytes.

    Invalid UTF-8 (including a multibyte character cut off by a bounded read)
    is kept as lone surrogates, so encoding the result with
    errors="surrogateescape" gives back the original bytes.
    """
    return raw.decode("utf-8", errors="surrogateescape")


def read_bounded(path: str, max_bytes: int) -> bytes:
    """
    Read at most max_bytes from the start of a file.

    Hitting end-of-file early is not an error; the bytes read so far are
    returned. Any other OSError propagates to the caller.
    """
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")
    with open(path, "rb") as f:
        return f.read(max_bytes)


def parse_ppid(pid: int, record: bytes | str) -> int:
    """
    Extract the parent pid from a /proc/<pid>/stat record.

    The second field is the command name in parentheses and may itself
    contain spaces and parentheses, so the record is split on the last ')'
    and the remaining fields are indexed positionally: state, then ppid.
    """
    text = record.decode("utf-8", errors="replace") if isinstance(record, bytes) else record
    head, sep, tail = text.rpartition(")")
    if not sep or "(" not in head:
        raise CorruptRecordError(pid, text)

    prefix = head.split("(", 1)[0].strip()
    fields = tail.split()
    if not prefix.isdigit() or len(fields) < 2:
        raise CorruptRecordError(pid, text)

    state, ppid = fields[0], fields[1]
    if len(state) != 1 or not state.isalpha() or not ppid.isdigit():
        raise CorruptRecordError(pid, text)
    return int(ppid)


class ProcFS(Protocol):
    """The handful of OS operations the scanner depends on."""

    def list_pids(self) -> set[int]:
        """Return the pids currently in the process table."""
        ...

    def read(self, pid: int, name: str, max_bytes: int) -> bytes:
        """Read up to max_bytes of /proc/<pid>/<name>."""
        ...

    def owner_uid(self, pid: int) -> int:
        """Return the uid owning the process."""
        ...

    def username(self, uid: int) -> str:
        """Resolve a uid to a username."""
        ...


class LinuxProcFS:
    """ProcFS backed by the live /proc filesystem."""

    def list_pids(self) -> set[int]:
        try:
            return set(psutil.pids())
        except (OSError, psutil.Error) as e:
            raise ProcessTableError(f"cannot enumerate {PROC_ROOT}: {e}") from e

    def read(self, pid: int, name: str, max_bytes: int) -> bytes:
        path = f"{PROC_ROOT}/{pid}/{name}"
        try:
            return read_bounded(path, max_bytes)
        except OSError as e:
            raise ProcessVanishedError(pid, path) from e

    def owner_uid(self, pid: int) -> int:
        # lstat the directory itself; its owner is the process's effective uid
        path = f"{PROC_ROOT}/{pid}"
        try:
            return os.lstat(path).st_uid
        except OSError as e:
            raise ProcessVanishedError(pid, path) from e

    def username(self, uid: int) -> str:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError as e:
            raise UserLookupError(uid) from e
