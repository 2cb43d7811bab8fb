"""psnoop - Textual viewer and command-line entry point."""

import argparse
import sys
import time
from queue import Empty

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from psnoop.errors import ProcessTableError
from psnoop.log import configure_logging, get_logger
from psnoop.models import UNKNOWN, ProcessEvent, ScannerConfig
from psnoop.scanner import ProcessScanner

logger = get_logger(__name__)


def describe_config(config: ScannerConfig) -> str:
    """Summarize the active filters in one line."""
    parts = [f"ppid={'on' if config.enable_ppid else 'off'}", f"cmd-length={config.max_cmd_length}"]
    if config.cgroup_filter:
        parts.append(f"cgroup!~{config.cgroup_filter}")
    if config.user_filter:
        parts.append("user!=" + ",".join(sorted(config.user_filter)))
    if config.cmd_filter:
        parts.append("cmd!~" + ",".join(sorted(config.cmd_filter)))
    return "  ".join(parts)


class ScanStats(Static):
    """Header widget showing the configuration and event counters."""

    DEFAULT_CSS = """
    ScanStats {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, config: ScannerConfig, *args, **kwargs) -> None:
        """Create the header for the given scanner configuration."""
        super().__init__(*args, **kwargs)
        self._config = config
        self._event_count: int = 0
        self._error_count: int = 0

    def on_mount(self) -> None:
        """Render the initial counters."""
        self._refresh_display()

    def record(self, events: int = 0, errors: int = 0) -> None:
        """Add to the event and error counters."""
        self._event_count += events
        self._error_count += errors
        self._refresh_display()

    def _refresh_display(self) -> None:
        self.update(
            f"{describe_config(self._config)}\n"
            f"New processes: {self._event_count}   Scan errors: {self._error_count}"
        )


class EventTable(Container):
    """Container for the table of new process events."""

    DEFAULT_CSS = """
    EventTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, show_ppid: bool, *args, **kwargs) -> None:
        """Create the table, with a PPID column if show_ppid is set."""
        super().__init__(*args, **kwargs)
        self._show_ppid = show_ppid
        self._row_count: int = 0

    @property
    def row_count(self) -> int:
        """Get the number of rows currently shown."""
        return self._row_count

    def compose(self) -> ComposeResult:
        """Compose the event table."""
        yield DataTable(id="event-table")

    def on_mount(self) -> None:
        """Set up the table columns."""
        table = self.query_one("#event-table", DataTable)
        table.cursor_type = "row"

        table.add_column("TIME", key="time", width=10)
        table.add_column("UID", key="uid", width=6)
        table.add_column("PID", key="pid", width=8)
        if self._show_ppid:
            table.add_column("PPID", key="ppid", width=8)
        table.add_column("Command", key="command")

    def add_events(self, events: list[ProcessEvent]) -> None:
        """Append events to the table and keep the newest row in view."""
        if not events:
            return
        table = self.query_one("#event-table", DataTable)
        stamp = time.strftime("%H:%M:%S")
        for event in events:
            row = [stamp, "???" if event.uid == UNKNOWN else str(event.uid), str(event.pid)]
            if self._show_ppid:
                row.append("???" if event.ppid == UNKNOWN else str(event.ppid))
            row.append(event.display_cmd)
            table.add_row(*row)
            self._row_count += 1
        table.scroll_end(animate=False)

    def clear(self) -> None:
        """Remove all rows."""
        self.query_one("#event-table", DataTable).clear()
        self._row_count = 0


class PsnoopApp(App):
    """Live view of newly started processes."""

    TITLE = "psnoop"
    SUB_TITLE = "New Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #scan-stats {
        dock: top;
        height: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "scan", "Scan now"),
        ("c", "clear", "Clear"),
    ]

    def __init__(self, scanner: ProcessScanner | None = None, interval: float = 0.1) -> None:
        """
        Initialize the PsnoopApp.

        Args:
            scanner: Scanner to drive. Defaults to one with default settings.
            interval: Seconds between scan triggers.
        """
        super().__init__()
        self._scanner = scanner if scanner is not None else ProcessScanner(ScannerConfig())
        self._interval = interval

    @property
    def scanner(self) -> ProcessScanner:
        """Get the scanner driven by the app."""
        return self._scanner

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield ScanStats(self._scanner.config, id="scan-stats")
        yield EventTable(self._scanner.config.enable_ppid)
        yield Footer()

    def on_mount(self) -> None:
        """Start the scanner and the trigger and drain timers."""
        self._scanner.start()
        self._scanner.trigger()
        self.set_interval(self._interval, self._scanner.trigger)
        self.set_interval(0.25, self._drain_queues)

    def _drain_queues(self) -> None:
        """Move queued events into the table and report queued errors."""
        events: list[ProcessEvent] = []
        while True:
            try:
                events.append(self._scanner.events.get_nowait())
            except Empty:
                break

        errors: list[ProcessTableError] = []
        while True:
            try:
                errors.append(self._scanner.errors.get_nowait())
            except Empty:
                break

        self.query_one(EventTable).add_events(events)
        self.query_one(ScanStats).record(events=len(events), errors=len(errors))
        for error in errors:
            self.notify(str(error), severity="error")

    def on_unmount(self) -> None:
        """Stop the scanner when the app shuts down."""
        self._scanner.stop()

    def action_scan(self) -> None:
        """Request an immediate scan."""
        self._scanner.trigger()

    def action_clear(self) -> None:
        """Clear the event table."""
        self.query_one(EventTable).clear()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._scanner.stop()
        self.exit()


def run_plain(scanner: ProcessScanner, interval: float) -> None:
    """Print one line per new process to stdout until interrupted."""
    events, errors = scanner.start()
    try:
        while True:
            scanner.trigger()
            deadline = time.monotonic() + interval
            while (remaining := deadline - time.monotonic()) > 0:
                try:
                    print(events.get(timeout=remaining), flush=True)
                except Empty:
                    break
            while not errors.empty():
                print(f"error: {errors.get_nowait()}", file=sys.stderr)
    except KeyboardInterrupt:
        pass
    finally:
        scanner.stop()


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="psnoop", description="Report processes as they are started"
    )
    parser.add_argument("-p", "--ppid", action="store_true", help="resolve parent pids")
    parser.add_argument(
        "--cmd-length",
        type=int,
        default=2048,
        help="maximum command line bytes to read (default: 2048)",
    )
    parser.add_argument(
        "--cgroup-filter", default="", help="skip processes whose cgroup contains this string"
    )
    parser.add_argument(
        "--user-filter",
        action="append",
        default=[],
        metavar="USER",
        help="skip processes owned by USER (repeatable)",
    )
    parser.add_argument(
        "--cmd-filter",
        action="append",
        default=[],
        metavar="TEXT",
        help="skip processes whose command contains TEXT (repeatable)",
    )
    parser.add_argument(
        "-i", "--interval", type=float, default=0.1, help="seconds between scans (default: 0.1)"
    )
    parser.add_argument(
        "--no-existing",
        action="store_true",
        help="do not report processes already running at startup",
    )
    parser.add_argument("--plain", action="store_true", help="print events instead of the TUI")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="log level (default: WARNING)",
    )
    parser.add_argument("--log-json", action="store_true", help="emit logs as JSON")
    return parser


def config_from_args(args: argparse.Namespace) -> ScannerConfig:
    """Build a ScannerConfig from parsed arguments."""
    return ScannerConfig(
        enable_ppid=args.ppid,
        max_cmd_length=args.cmd_length,
        cgroup_filter=args.cgroup_filter,
        user_filter=frozenset(args.user_filter),
        cmd_filter=frozenset(args.cmd_filter),
        report_existing=not args.no_existing,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for psnoop."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(args.log_level, json_output=args.log_json)
    scanner = ProcessScanner(config)
    interval = max(0.01, args.interval)
    logger.info("psnoop_starting", config=describe_config(config), interval=interval)

    if args.plain:
        run_plain(scanner, interval)
    else:
        PsnoopApp(scanner, interval=interval).run()


if __name__ == "__main__":
    main()
