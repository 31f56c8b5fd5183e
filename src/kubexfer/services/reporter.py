"""Progress reporting from a transfer pod's log output."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from kubexfer.core.config import Settings, get_settings
from kubexfer.services.k8s_pods import PodLogTail
from kubexfer.services.progress import latest_progress

logger = logging.getLogger(__name__)

# Pod output is forwarded here at DEBUG level in plain mode
pod_logger = logging.getLogger("kubexfer.pod")

BAR_DESCRIPTION = ":open_file_folder: Copying data..."


class CompletionSignal:
    """One-shot signal carrying whether the job's pod succeeded.

    Sending twice raises ``concurrent.futures.InvalidStateError``.
    """

    def __init__(self) -> None:
        self._future: Future[bool] = Future()

    def send(self, success: bool) -> None:
        self._future.set_result(success)

    def wait(self, timeout: float | None = None) -> bool | None:
        """Wait for the signal.

        Returns:
            The job outcome, or None if the timeout elapsed first
        """
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError:
            return None

    @property
    def is_sent(self) -> bool:
        return self._future.done()


class ProgressSink(Protocol):
    """Bytes-based progress display."""

    def set_maximum(self, total: int) -> None: ...

    def set_position(self, transferred: int) -> None: ...

    def finish(self) -> None: ...

    def close(self) -> None: ...


class RichProgressSink:
    """Progress bar rendered with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(bar_width=None),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
            expand=True,
        )
        self._task_id = self._progress.add_task(BAR_DESCRIPTION, total=1)
        self._progress.start()

    def set_maximum(self, total: int) -> None:
        self._progress.update(self._task_id, total=total)

    def set_position(self, transferred: int) -> None:
        self._progress.update(self._task_id, completed=transferred)

    def finish(self) -> None:
        task = self._progress.tasks[0]
        self._progress.update(self._task_id, completed=task.total)
        self._progress.stop()

    def close(self) -> None:
        self._progress.stop()


class ProgressReporter(ABC):
    """Reports transfer progress until the completion signal arrives.

    Runs on its own thread. Errors never escape the thread: they are logged
    as warnings and the reporter stops.
    """

    def __init__(self, log_tail: PodLogTail, signal: CompletionSignal, interval: float) -> None:
        self.log_tail = log_tail
        self.signal = signal
        self.interval = interval

    @abstractmethod
    def report(self) -> None:
        """Report progress until done; may raise."""

    def run(self) -> None:
        try:
            self.report()
        except Exception as e:
            logger.warning("Cannot tail logs to display progress: %s", e)

    def start(self) -> threading.Thread:
        thread = threading.Thread(
            target=self.run,
            name=f"progress-{self.log_tail.pod.name}",
            daemon=True,
        )
        thread.start()
        return thread


class PlainLogReporter(ProgressReporter):
    """Forwards the pod's log lines verbatim to the debug log."""

    def _forward_new_lines(self) -> None:
        for line in self.log_tail.read_new():
            pod_logger.debug("%s", line)

    def report(self) -> None:
        while self.signal.wait(self.interval) is None:
            self._forward_new_lines()
        # Flush whatever was logged after the last poll
        self._forward_new_lines()


class ProgressBarReporter(ProgressReporter):
    """Draws a progress bar from rsync's progress output."""

    def __init__(
        self,
        log_tail: PodLogTail,
        signal: CompletionSignal,
        interval: float,
        sink_factory: Callable[[], ProgressSink] = RichProgressSink,
    ) -> None:
        super().__init__(log_tail, signal, interval)
        self.sink_factory = sink_factory

    def report(self) -> None:
        self.log_tail.probe()

        sink = self.sink_factory()
        try:
            while True:
                success = self.signal.wait(self.interval)
                if success is not None:
                    if success:
                        sink.finish()
                    return

                snapshot = latest_progress(self.log_tail.read_new())
                if snapshot is None:
                    continue

                sink.set_maximum(snapshot.total)
                sink.set_position(snapshot.transferred)
                if snapshot.is_complete:
                    sink.finish()
                    return
        finally:
            sink.close()


def create_reporter(
    log_tail: PodLogTail,
    signal: CompletionSignal,
    settings: Settings | None = None,
    sink_factory: Callable[[], ProgressSink] | None = None,
) -> ProgressReporter:
    """Create the reporter selected by the display setting.

    Args:
        log_tail: Log reader for the transfer pod
        signal: Completion signal the reporter stops on
        settings: Library settings (uses default if not provided)
        sink_factory: Progress bar factory for fancy display

    Returns:
        A ProgressBarReporter for fancy display, otherwise a PlainLogReporter
    """
    settings = settings or get_settings()
    interval = settings.log_poll_interval_seconds

    if settings.fancy_display:
        return ProgressBarReporter(
            log_tail,
            signal,
            interval,
            sink_factory=sink_factory or RichProgressSink,
        )
    return PlainLogReporter(log_tail, signal, interval)
