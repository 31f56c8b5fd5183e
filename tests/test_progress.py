"""Tests for rsync progress parsing."""

import pytest

from kubexfer.models.k8s import ProgressSnapshot
from kubexfer.services.progress import ParseError, latest_progress, parse_log_line


class TestParseLogLine:
    """Tests for single-line parsing."""

    def test_in_progress_line_estimates_total(self):
        """Test that the total is estimated from transferred bytes and percentage."""
        snapshot = parse_log_line("  1,048,576  50%")
        assert snapshot == ProgressSnapshot(percentage=50, transferred=1048576, total=2097152)

    def test_summary_line_reports_complete(self):
        """Test that the final summary line reports 100% of its byte count."""
        snapshot = parse_log_line("total size is 5,000,000")
        assert snapshot == ProgressSnapshot(percentage=100, transferred=5000000, total=5000000)

    def test_summary_line_with_rsync_suffix(self):
        """Test the summary line as rsync actually prints it."""
        snapshot = parse_log_line("total size is 1,234,567  speedup is 1.00")
        assert snapshot is not None
        assert snapshot.is_complete
        assert snapshot.transferred == snapshot.total == 1234567

    def test_summary_takes_priority_over_progress(self):
        """Test that a line matching both patterns is treated as the summary."""
        snapshot = parse_log_line("total size is 2,000  10%")
        assert snapshot == ProgressSnapshot(percentage=100, transferred=2000, total=2000)

    def test_progress2_line(self):
        """Test a full --info=progress2 style line."""
        snapshot = parse_log_line("     32,768,000  25%   31.25MB/s    0:00:03 (xfr#1, to-chk=3/5)")
        assert snapshot is not None
        assert snapshot.percentage == 25
        assert snapshot.transferred == 32768000
        assert snapshot.total == 131072000

    def test_byte_count_without_separators(self):
        snapshot = parse_log_line("4096 4%")
        assert snapshot == ProgressSnapshot(percentage=4, transferred=4096, total=102400)

    def test_zero_percent_is_clamped(self):
        """Test that 0% is treated as 1% to avoid dividing by zero."""
        snapshot = parse_log_line("  5,000   0%")
        assert snapshot is not None
        assert snapshot.percentage == 1
        assert snapshot.total == 500000

    def test_total_raised_to_transferred_on_rounding(self):
        """Test that a rounded-down estimate never falls below transferred."""
        # 29 / 100 * 100 == 28.999999999999996 in floating point
        snapshot = parse_log_line("29 100%")
        assert snapshot is not None
        assert snapshot.transferred == 29
        assert snapshot.total == 29

    @pytest.mark.parametrize(
        "line,percentage,transferred",
        [
            ("  1  1%", 1, 1),
            ("  123,456  7%", 7, 123456),
            ("  999,999,999  99%", 99, 999999999),
            ("  10  100%", 100, 10),
        ],
    )
    def test_total_never_below_transferred(self, line: str, percentage: int, transferred: int):
        snapshot = parse_log_line(line)
        assert snapshot is not None
        assert snapshot.percentage == percentage
        assert snapshot.transferred == transferred
        assert snapshot.total >= transferred

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "sending incremental file list",
            "data/file.bin",
            "sent 1,024 bytes  received 35 bytes  2,118.00 bytes/sec",
            "rsync error: some files could not be transferred (code 23)",
        ],
    )
    def test_unrelated_lines_are_ignored(self, line: str):
        assert parse_log_line(line) is None

    def test_percentage_above_hundred_raises(self):
        """Test that a progress-shaped line with an impossible percentage is an error."""
        with pytest.raises(ParseError):
            parse_log_line("  1,024  250%")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_log_line("  1,024  101%")

    def test_parsing_is_repeatable(self):
        line = "  2,048  12%"
        assert parse_log_line(line) == parse_log_line(line)


class TestLatestProgress:
    """Tests for picking the latest snapshot from a batch of lines."""

    def test_newest_match_wins(self):
        lines = ["  100  10%", "  500  50%", "  900  90%"]
        assert latest_progress(lines) == ProgressSnapshot(percentage=90, transferred=900, total=1000)

    def test_unparseable_lines_after_match_are_skipped(self):
        lines = ["  500  50%", "file-a", "file-b", ""]
        snapshot = latest_progress(lines)
        assert snapshot is not None
        assert snapshot.transferred == 500

    def test_no_match_returns_none(self):
        assert latest_progress(["sending incremental file list", "file-a"]) is None

    def test_empty_batch_returns_none(self):
        assert latest_progress([]) is None

    @pytest.mark.parametrize("size,index", [(1, 0), (5, 0), (5, 2), (50, 49), (50, 17)])
    def test_single_match_found_regardless_of_batch_size(self, size: int, index: int):
        lines = [f"file-{i}" for i in range(size)]
        lines[index] = "  2,000  20%"
        assert latest_progress(lines) == ProgressSnapshot(
            percentage=20, transferred=2000, total=10000
        )

    def test_corrupt_line_raises(self):
        """Test that a corrupt progress line with no other match is an error."""
        with pytest.raises(ParseError):
            latest_progress(["file-a", "  1,024  250%", "file-b"])

    def test_corrupt_line_before_older_match_raises(self):
        """Test that scanning stops at the error instead of using older lines."""
        with pytest.raises(ParseError):
            latest_progress(["  500  50%", "  1,024  250%"])

    def test_corrupt_line_older_than_match_is_not_reached(self):
        lines = ["  1,024  250%", "  700  70%"]
        snapshot = latest_progress(lines)
        assert snapshot is not None
        assert snapshot.percentage == 70

    def test_summary_line_after_progress(self):
        lines = ["  1,048,576  50%", "", "sent 2,097,300 bytes", "total size is 2,097,152"]
        snapshot = latest_progress(lines)
        assert snapshot is not None
        assert snapshot.is_complete
        assert snapshot.total == 2097152


class TestProgressSnapshot:
    """Tests for the snapshot model invariants."""

    def test_total_raised_to_transferred(self):
        snapshot = ProgressSnapshot(percentage=10, transferred=50, total=10)
        assert snapshot.total == 50

    def test_percentage_bounds(self):
        with pytest.raises(ValueError):
            ProgressSnapshot(percentage=101, transferred=1, total=1)

    def test_snapshot_is_frozen(self):
        snapshot = ProgressSnapshot(percentage=10, transferred=1, total=10)
        with pytest.raises(ValueError):
            snapshot.total = 5
