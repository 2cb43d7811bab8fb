"""Tests for AttributeExtractor."""

from psnoop.errors import CorruptRecordError, ProcessVanishedError
from psnoop.extractor import AttributeExtractor
from psnoop.models import UNKNOWN, UNREADABLE_CMD, ProcessEvent, ScannerConfig


class TestOwner:
    """Tests for owner lookups."""

    def test_owner_found(self, procfs):
        procfs.add(10, uid=1001)
        lookup = AttributeExtractor(procfs, ScannerConfig()).owner(10)
        assert lookup.ok
        assert lookup.value == 1001

    def test_owner_of_exited_process(self, procfs):
        lookup = AttributeExtractor(procfs, ScannerConfig()).owner(10)
        assert lookup.failed
        assert isinstance(lookup.error, ProcessVanishedError)


class TestParent:
    """Tests for parent pid lookups."""

    def test_disabled_skips_read(self, procfs):
        procfs.add(10, ppid=1)
        lookup = AttributeExtractor(procfs, ScannerConfig(enable_ppid=False)).parent(10)
        assert not lookup.ok
        assert not lookup.failed
        assert procfs.reads == []

    def test_enabled(self, procfs):
        procfs.add(10, ppid=77, name="my (odd) name")
        lookup = AttributeExtractor(procfs, ScannerConfig(enable_ppid=True)).parent(10)
        assert lookup.value == 77
        assert procfs.reads == [(10, "stat", 512)]

    def test_unreadable_stat(self, procfs):
        procfs.add(10, ppid=None)
        lookup = AttributeExtractor(procfs, ScannerConfig(enable_ppid=True)).parent(10)
        assert isinstance(lookup.error, ProcessVanishedError)

    def test_corrupt_stat(self, procfs):
        proc = procfs.add(10)
        proc.files["stat"] = b"not a stat line"
        lookup = AttributeExtractor(procfs, ScannerConfig(enable_ppid=True)).parent(10)
        assert isinstance(lookup.error, CorruptRecordError)


class TestCmdline:
    """Tests for command line reads."""

    def test_nul_separators_become_spaces(self, procfs):
        procfs.add(10, cmdline=b"/bin/sleep\x0010\x00")
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.value == "/bin/sleep 10 "

    def test_other_characters_untouched(self, procfs):
        procfs.add(10, cmdline=b"sh\x00-c\x00echo  'a\tb'\x00")
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.value == "sh -c echo  'a\tb' "

    def test_consecutive_nuls_each_become_a_space(self, procfs):
        procfs.add(10, cmdline=b"a\x00\x00b")
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.value == "a  b"

    def test_non_utf8_bytes_survive(self, procfs):
        procfs.add(10, cmdline=b"/bin/echo\x00caf\xe9")
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.value.encode("utf-8", errors="surrogateescape") == b"/bin/echo caf\xe9"

    def test_multibyte_character_cut_by_bound(self, procfs):
        procfs.add(10, cmdline=b"ab\xc3\xa9")
        lookup = AttributeExtractor(procfs, ScannerConfig(max_cmd_length=3)).cmdline(10)
        assert lookup.value.startswith("ab")
        assert lookup.value.encode("utf-8", errors="surrogateescape") == b"ab\xc3"

    def test_read_is_bounded(self, procfs):
        procfs.add(10, cmdline=b"abcdefghij")
        lookup = AttributeExtractor(procfs, ScannerConfig(max_cmd_length=4)).cmdline(10)
        assert lookup.value == "abcd"
        assert procfs.reads == [(10, "cmdline", 4)]

    def test_empty_cmdline_is_present(self, procfs):
        procfs.add(10, cmdline=b"")
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.ok
        assert lookup.value == ""

    def test_unreadable_cmdline(self, procfs):
        lookup = AttributeExtractor(procfs, ScannerConfig()).cmdline(10)
        assert lookup.failed


class TestExtract:
    """Tests for full extraction."""

    def test_sleep_scenario(self, procfs):
        procfs.add(4242, cmdline=b"/bin/sleep\x0010", uid=1000, ppid=1)
        extractor = AttributeExtractor(procfs, ScannerConfig(enable_ppid=True, max_cmd_length=64))
        event = extractor.extract(4242).to_event()
        assert event == ProcessEvent(uid=1000, pid=4242, ppid=1, cmd="/bin/sleep 10")

    def test_process_gone_before_reads(self, procfs):
        extractor = AttributeExtractor(procfs, ScannerConfig(enable_ppid=True, max_cmd_length=64))
        event = extractor.extract(4242).to_event()
        assert event == ProcessEvent(uid=UNKNOWN, pid=4242, ppid=UNKNOWN, cmd=UNREADABLE_CMD)

    def test_uses_given_owner_lookup(self, procfs):
        procfs.add(10, uid=1000)
        extractor = AttributeExtractor(procfs, ScannerConfig())
        owner = extractor.owner(10)
        procfs.processes[10].uid = 0
        assert extractor.extract(10, uid=owner).uid.value == 1000
