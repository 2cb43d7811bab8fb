"""Process scanning engine for psnoop."""

import threading
from collections.abc import Callable
from queue import Full, Queue

from psnoop.errors import ProcessTableError
from psnoop.extractor import AttributeExtractor
from psnoop.filters import FilterChain
from psnoop.index import ProcessIndex
from psnoop.log import get_logger
from psnoop.models import ProcessEvent, ScannerConfig
from psnoop.procfs import LinuxProcFS, ProcFS

logger = get_logger(__name__)

EVENT_QUEUE_SIZE = 100
WAKE_INTERVAL = 0.1


class ScanAborted(Exception):
    """Raised inside a scan when the scanner is stopped mid-cycle."""


class ProcessScanner:
    """
    Reports processes that appeared since the previous scan.

    Runs in a daemon thread that performs one full scan per trigger and
    pushes a ProcessEvent per new, unfiltered process onto a bounded queue.
    Triggers that arrive while a scan is running are coalesced into a single
    pending scan. A full event queue blocks the scan until the consumer
    catches up.
    """

    def __init__(self, config: ScannerConfig, procfs: ProcFS | None = None) -> None:
        """
        Initialize the ProcessScanner.

        Args:
            config: Scanner configuration.
            procfs: Source of process information. Defaults to the live /proc.
        """
        self._config = config
        self._procfs = procfs if procfs is not None else LinuxProcFS()
        self._index = ProcessIndex()
        self._extractor = AttributeExtractor(self._procfs, config)
        self._filters = FilterChain(self._procfs, config)
        self._events: Queue[ProcessEvent] = Queue(maxsize=EVENT_QUEUE_SIZE)
        self._errors: Queue[ProcessTableError] = Queue()
        self._trigger = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def config(self) -> ScannerConfig:
        """Get the scanner configuration."""
        return self._config

    @property
    def index(self) -> ProcessIndex:
        """Get the index of pids seen at the last completed scan."""
        return self._index

    @property
    def events(self) -> Queue[ProcessEvent]:
        """Get the queue new process events are pushed to."""
        return self._events

    @property
    def errors(self) -> Queue[ProcessTableError]:
        """Get the queue enumeration failures are pushed to."""
        return self._errors

    @property
    def is_running(self) -> bool:
        """Check if the scanner thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(
        self, trigger: threading.Event | None = None
    ) -> tuple[Queue[ProcessEvent], Queue[ProcessTableError]]:
        """
        Start the scanning thread.

        Args:
            trigger: Event to wait on for scan requests. Defaults to the
                scanner's own event, set through trigger(). The scanner
                clears it when a scan begins.

        Returns:
            The event queue and the error queue.
        """
        if self.is_running:
            return self._events, self._errors

        if trigger is not None:
            self._trigger = trigger
        # Each thread gets its own stop flag so a thread that outlived
        # stop() can never be revived by a later start()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._scan_loop,
            args=(self._trigger, self._stop_event),
            daemon=True,
            name="ProcessScanner",
        )
        self._thread.start()
        return self._events, self._errors

    def trigger(self) -> None:
        """Request a scan."""
        self._trigger.set()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the scanning thread.

        If the thread is still finishing a scan when the timeout expires,
        it stays tracked and is_running remains true until it exits.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def scan_once(self, emit: Callable[[ProcessEvent], None] | None = None) -> list[ProcessEvent]:
        """
        Run one scan cycle and return the events it produced.

        Must not be called while the scanning thread is running.

        Args:
            emit: Called with each event as soon as it is produced. The
                scanning thread uses this to feed the event queue.

        Raises:
            ProcessTableError: The process table could not be enumerated.
                The index is left unchanged.
        """
        current = self._procfs.list_pids()

        if not self._index.is_populated and not self._config.report_existing:
            self._index.commit(current)
            logger.info("index_seeded", pids=len(current))
            return []

        delta = self._index.diff(current)
        emitted: list[ProcessEvent] = []
        for pid in sorted(delta.new):
            event = self._process_new_pid(pid)
            if event is not None:
                if emit is not None:
                    emit(event)
                emitted.append(event)

        self._index.commit(current)
        logger.debug(
            "scan_complete",
            new=len(delta.new),
            exited=len(delta.exited),
            emitted=len(emitted),
        )
        return emitted

    def _process_new_pid(self, pid: int) -> ProcessEvent | None:
        try:
            attrs = self._filters.admits(pid, self._extractor)
        except Exception:
            # One misbehaving process must not stop the rest of the scan
            logger.exception("process_inspection_failed", pid=pid)
            return None
        return attrs.to_event() if attrs is not None else None

    def _emit(self, event: ProcessEvent, stop_event: threading.Event) -> None:
        """Put an event on the queue, waiting for room unless stopped."""
        while True:
            if stop_event.is_set():
                raise ScanAborted()
            try:
                self._events.put(event, timeout=WAKE_INTERVAL)
                return
            except Full:
                logger.debug("event_queue_full", pid=event.pid)

    def _scan_loop(self, trigger: threading.Event, stop_event: threading.Event) -> None:
        """Main scanning loop running in the background thread."""
        while not stop_event.is_set():
            # Poll so stop() never has to touch a caller-owned trigger
            if not trigger.wait(timeout=WAKE_INTERVAL):
                continue
            if stop_event.is_set():
                break
            # Cleared before scanning so a pulse during the scan stays pending
            trigger.clear()

            try:
                self.scan_once(emit=lambda event: self._emit(event, stop_event))
            except ProcessTableError as e:
                logger.warning("process_table_unavailable", error=str(e))
                self._errors.put(e)
            except ScanAborted:
                logger.debug("scan_aborted")
                break
