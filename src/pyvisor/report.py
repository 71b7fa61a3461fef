"""Operator-facing report output for pyvisor."""

import sys
from datetime import datetime
from typing import TextIO

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "June", "July", "Aug", "Sept", "Oct", "Nov", "Dec"]

SEPARATOR = "..."


def format_timestamp(moment: datetime | None = None) -> str:
    """Format a time as e.g. ``Mon, Oct 19, 2026 3:7:9 PM``."""
    if moment is None:
        moment = datetime.now()
    hour = moment.hour
    meridiem = "AM"
    if hour >= 12:
        meridiem = "PM"
        hour -= 12
    if hour == 0:
        hour = 12
    return (
        f"{WEEKDAYS[moment.weekday()]}, {MONTHS[moment.month - 1]} {moment.day}, "
        f"{moment.year} {hour}:{moment.minute}:{moment.second} {meridiem}"
    )


class Reporter:
    """
    Writes the supervisor's status lines.

    Every line is flushed immediately so the report interleaves correctly
    with output from the children, which share the same stdout.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        """
        Initialize the Reporter.

        Args:
            stream: Where to write. Defaults to the current sys.stdout.
        """
        self._stream = stream

    def _write(self, text: str, end: str = "\n") -> None:
        """Write one line to the stream and flush it."""
        stream = self._stream if self._stream is not None else sys.stdout
        print(text, end=end, file=stream, flush=True)

    def starting(self) -> None:
        """Print the start banner."""
        self._write(f"Starting report, {format_timestamp()}")

    def started(self, index: int, path: str, pid: int) -> None:
        """Report a child that launched."""
        self._write(f"[{index}] {path}, started successfully (pid: {pid})")

    def failed_to_start(self, index: int, path: str) -> None:
        """Report a line that could not be launched."""
        self._write(f"[{index}] badprogram {path}, failed to start")

    def separator(self) -> None:
        """Print the report separator line."""
        self._write(SEPARATOR)

    def normal_report(self) -> None:
        """Print the banner that opens an interval report."""
        self._write(f"Normal report, {format_timestamp()}")

    def running(self, index: int, cpu_percent: int, memory_mb: int) -> None:
        """Report the usage of a running child."""
        self._write(f"[{index}] Running, cpu usage: {cpu_percent}%, mem usage: {memory_mb} MB")

    def exited(self, index: int) -> None:
        """Report a child that has exited."""
        self._write(f"[{index}] Exited")

    def terminated(self, index: int) -> None:
        """Report a child killed at shutdown."""
        self._write(f"[{index}] Terminated")

    def signal_received(self) -> None:
        """Print the interrupt notice, without a newline."""
        self._write("Signal Received - ", end="")

    def terminating(self) -> None:
        """Print the shutdown banner."""
        self._write(f"Terminating, {format_timestamp()}")

    def exiting(self, total_seconds: int) -> None:
        """Print the total run time."""
        self._write(f"Exiting (total time: {total_seconds} seconds)")
