"""Exclusion filters applied to newly observed processes."""

from psnoop.errors import ScannerError
from psnoop.extractor import AttributeExtractor
from psnoop.log import get_logger
from psnoop.models import UNREADABLE_CMD, Lookup, ProcessAttributes, ScannerConfig
from psnoop.procfs import ProcFS, decode_proc_text

logger = get_logger(__name__)

CGROUP_READ_SIZE = 512


class FilterChain:
    """
    The cgroup, user and command exclusion filters, in that order.

    Any filter can suppress a process; no filter forces inclusion.
    """

    def __init__(self, procfs: ProcFS, config: ScannerConfig) -> None:
        self._procfs = procfs
        self._config = config

    def excludes_cgroup(self, pid: int) -> bool:
        """True if the process belongs to the excluded cgroup."""
        if not self._config.cgroup_filter:
            return False
        try:
            cgroup = self._procfs.read(pid, "cgroup", CGROUP_READ_SIZE)
        except ScannerError as e:
            # Unreadable cgroup file counts as empty
            logger.debug("cgroup_read_failed", pid=pid, error=str(e))
            return False
        return self._config.cgroup_filter in decode_proc_text(cgroup)

    def excludes_user(self, uid: Lookup[int]) -> bool:
        """True if the owner resolves to an excluded username."""
        if not self._config.user_filter or not uid.ok:
            return False
        try:
            name = self._procfs.username(uid.value)
        except ScannerError as e:
            logger.debug("user_lookup_failed", uid=uid.value, error=str(e))
            return False
        return name in self._config.user_filter

    def excludes_command(self, cmd: str) -> bool:
        """True if the command matches an excluded substring or looks incomplete."""
        if not self._config.cmd_filter:
            return False
        cmd = cmd.strip()
        if cmd in ("", UNREADABLE_CMD):
            return True
        return any(pattern in cmd for pattern in self._config.cmd_filter)

    def admits(self, pid: int, extractor: AttributeExtractor) -> ProcessAttributes | None:
        """
        Run the chain for one pid, extracting attributes as they are needed.

        Returns:
            The extracted attributes, or None if a filter suppressed the process.
        """
        if self.excludes_cgroup(pid):
            logger.debug("process_suppressed", pid=pid, reason="cgroup")
            return None

        uid = extractor.owner(pid)
        if self.excludes_user(uid):
            logger.debug("process_suppressed", pid=pid, reason="user", uid=uid.value)
            return None

        attrs = extractor.extract(pid, uid=uid)
        if self.excludes_command(attrs.command):
            logger.debug("process_suppressed", pid=pid, reason="command")
            return None
        return attrs
