"""Shared fixtures: an in-memory process table."""

from dataclasses import dataclass, field

import pytest

from psnoop.errors import ProcessTableError, ProcessVanishedError, UserLookupError


@dataclass
class FakeProcess:
    uid: int | None = 1000
    files: dict[str, bytes] = field(default_factory=dict)


class FakeProcFS:
    """ProcFS over a dict of fake processes; missing data behaves like an exited process."""

    def __init__(self) -> None:
        self.processes: dict[int, FakeProcess] = {}
        self.users: dict[int, str] = {0: "root", 1000: "alice", 1001: "bob"}
        self.enumeration_error: Exception | None = None
        self.reads: list[tuple[int, str, int]] = []

    def add(
        self,
        pid: int,
        cmdline: bytes | None = b"",
        uid: int | None = 1000,
        ppid: int | None = 1,
        name: str = "proc",
        cgroup: bytes | None = b"0::/user.slice\n",
    ) -> FakeProcess:
        files = {}
        if cmdline is not None:
            files["cmdline"] = cmdline
        if ppid is not None:
            files["stat"] = f"{pid} ({name}) S {ppid} {pid} {pid} 0 -1 4194304".encode()
        if cgroup is not None:
            files["cgroup"] = cgroup
        proc = FakeProcess(uid=uid, files=files)
        self.processes[pid] = proc
        return proc

    def remove(self, pid: int) -> None:
        del self.processes[pid]

    def list_pids(self) -> set[int]:
        if self.enumeration_error is not None:
            raise ProcessTableError(str(self.enumeration_error))
        return set(self.processes)

    def read(self, pid: int, name: str, max_bytes: int) -> bytes:
        self.reads.append((pid, name, max_bytes))
        proc = self.processes.get(pid)
        if proc is None or name not in proc.files:
            raise ProcessVanishedError(pid, f"/proc/{pid}/{name}")
        return proc.files[name][:max_bytes]

    def owner_uid(self, pid: int) -> int:
        proc = self.processes.get(pid)
        if proc is None or proc.uid is None:
            raise ProcessVanishedError(pid, f"/proc/{pid}")
        return proc.uid

    def username(self, uid: int) -> str:
        try:
            return self.users[uid]
        except KeyError as e:
            raise UserLookupError(uid) from e


@pytest.fixture
def procfs() -> FakeProcFS:
    """An empty fake process table."""
    return FakeProcFS()
