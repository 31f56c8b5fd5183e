"""Parsing of rsync progress output into progress snapshots."""

from __future__ import annotations

import re
from collections.abc import Sequence

from kubexfer.models.k8s import ProgressSnapshot
from kubexfer.services.errors import TransferError

PROGRESS_PATTERN = re.compile(r"\s*(?P<bytes>[0-9]+(,[0-9]+)*)\s+(?P<percentage>[0-9]{1,3})%")
RSYNC_END_PATTERN = re.compile(r"\s*total size is (?P<bytes>[0-9]+(,[0-9]+)*)")


class ParseError(TransferError, ValueError):
    """Raised when a line matches a progress pattern but its numbers are invalid."""


def _parse_num_bytes(value: str) -> int:
    try:
        return int(value.replace(",", ""))
    except ValueError as e:
        raise ParseError(f"Invalid byte count: {value!r}") from e


def parse_log_line(line: str) -> ProgressSnapshot | None:
    """Parse a single rsync log line.

    The ``total size is N`` summary printed at the end of a run takes priority
    and always reports 100%. Otherwise an in-progress line such as
    ``1,048,576  50%`` yields a total estimated from the percentage.

    Args:
        line: Raw log line

    Returns:
        ProgressSnapshot, or None if the line carries no progress information

    Raises:
        ParseError: If a pattern matched but its numeric fields are malformed
    """
    end_match = RSYNC_END_PATTERN.search(line)
    if end_match:
        total = _parse_num_bytes(end_match.group("bytes"))
        return ProgressSnapshot(percentage=100, transferred=total, total=total)

    match = PROGRESS_PATTERN.search(line)
    if not match:
        return None

    percentage = int(match.group("percentage"))
    if percentage > 100:
        raise ParseError(f"Percentage out of range: {percentage}")
    # Avoid division by zero but still allow estimating a total
    percentage = max(percentage, 1)

    transferred = _parse_num_bytes(match.group("bytes"))
    total = int(transferred / percentage * 100)

    return ProgressSnapshot(
        percentage=percentage,
        transferred=transferred,
        total=max(total, transferred),
    )


def latest_progress(lines: Sequence[str]) -> ProgressSnapshot | None:
    """Find the most recent progress snapshot in a batch of log lines.

    Lines are scanned newest first and scanning stops at the first line that
    parses, so older lines in the batch are never looked at.

    Args:
        lines: Log lines ordered oldest to newest

    Returns:
        The latest ProgressSnapshot, or None if no line carries progress

    Raises:
        ParseError: From the first malformed progress line encountered
    """
    for line in reversed(lines):
        snapshot = parse_log_line(line)
        if snapshot is not None:
            return snapshot
    return None
