"""Per-process attribute extraction."""

from psnoop.errors import ScannerError
from psnoop.log import get_logger
from psnoop.models import Lookup, ProcessAttributes, ScannerConfig
from psnoop.procfs import ProcFS, decode_proc_text, parse_ppid

logger = get_logger(__name__)

STAT_READ_SIZE = 512


class AttributeExtractor:
    """
    Reads uid, parent pid and command line for a process.

    Every read races against the process exiting, so each attribute is
    looked up independently and failures are returned as failed lookups
    instead of being raised.
    """

    def __init__(self, procfs: ProcFS, config: ScannerConfig) -> None:
        self._procfs = procfs
        self._config = config

    def owner(self, pid: int) -> Lookup[int]:
        """Look up the uid owning the process."""
        try:
            return Lookup.of(self._procfs.owner_uid(pid))
        except ScannerError as e:
            logger.debug("owner_lookup_failed", pid=pid, error=str(e))
            return Lookup.failure(e)

    def parent(self, pid: int) -> Lookup[int]:
        """Look up the parent pid, or return an empty lookup if disabled."""
        if not self._config.enable_ppid:
            return Lookup()
        try:
            stat = self._procfs.read(pid, "stat", STAT_READ_SIZE)
            return Lookup.of(parse_ppid(pid, stat))
        except ScannerError as e:
            logger.debug("parent_lookup_failed", pid=pid, error=str(e))
            return Lookup.failure(e)

    def cmdline(self, pid: int) -> Lookup[str]:
        """Read the command line with NUL separators turned into spaces."""
        try:
            raw = self._procfs.read(pid, "cmdline", self._config.max_cmd_length)
        except ScannerError as e:
            logger.debug("cmdline_read_failed", pid=pid, error=str(e))
            return Lookup.failure(e)
        return Lookup.of(decode_proc_text(raw.replace(b"\x00", b" ")))

    def extract(self, pid: int, uid: Lookup[int] | None = None) -> ProcessAttributes:
        """
        Extract all attributes of a process.

        Args:
            pid: Process to inspect.
            uid: Owner lookup already performed by the caller, if any.
        """
        return ProcessAttributes(
            pid=pid,
            uid=uid if uid is not None else self.owner(pid),
            ppid=self.parent(pid),
            cmdline=self.cmdline(pid),
        )
