"""Supervision loop and shutdown handling for pyvisor."""

import logging
import signal
import time
from enum import Enum
from types import FrameType

from pyvisor.config import POLL_GRANULARITY, REPORT_INTERVAL
from pyvisor.models import NOT_FOUND, ProcessRecord, SupervisorState
from pyvisor.report import Reporter
from pyvisor.sampler import clock_ticks_per_second, sample_cpu_ticks, sample_usage

log = logging.getLogger(__name__)


class Phase(Enum):
    """States of the supervision loop."""

    SAMPLING = "sampling"
    REPORTING = "reporting"
    WAITING = "waiting"
    ALL_EXITED = "all_exited"
    SHUTDOWN_REQUESTED = "shutdown_requested"


def compute_cpu_percent(
    previous_ticks: int,
    current_ticks: int,
    clock_ticks: int,
    interval: float = REPORT_INTERVAL,
) -> int:
    """
    Share of one interval a child spent on the CPU, as an integer percent.

    Not clamped: a host that reports ticks inconsistently can yield values
    above 100.
    """
    full_cpu_increase = max(1, int(interval * clock_ticks))
    return (current_ticks - previous_ticks) * 100 // full_cpu_increase


class InterruptHandler:
    """
    SIGINT handler that requests a supervisor shutdown.

    The handler only sets the stop flag; the loop prints the notice.
    """

    def __init__(self, state: SupervisorState, signum: int = signal.SIGINT) -> None:
        self.state = state
        self.signum = signum
        self.received = False
        self._previous = None
        self._installed = False

    def __call__(self, _sig: int, _frame: FrameType | None) -> None:
        self.received = True
        self.state.request_stop()

    def install(self) -> None:
        """Register this handler, remembering the one it replaces."""
        self._previous = signal.signal(self.signum, self)
        self._installed = True

    def restore(self) -> None:
        """Put back the handler that was active before install()."""
        if not self._installed:
            return
        signal.signal(self.signum, self._previous if self._previous is not None else signal.SIG_DFL)
        self._installed = False


class Supervisor:
    """
    Polls a table of child processes until they all exit or a stop triggers.

    Every interval the supervisor prints a normal report with the CPU and
    memory usage of each live child. It ends either when no child is left
    running, or when the stop flag is set or the time limit passes, in which
    case the survivors are killed.
    """

    def __init__(
        self,
        table: list[ProcessRecord],
        state: SupervisorState,
        reporter: Reporter | None = None,
        interval: float = REPORT_INTERVAL,
        poll_granularity: float = POLL_GRANULARITY,
    ) -> None:
        """
        Initialize the Supervisor.

        Args:
            table: Process table produced by the launcher, in input order.
            state: Shared run state (time limit, start time, stop flag).
            reporter: Output sink for status lines.
            interval: Seconds between normal reports. Default 5.0s.
            poll_granularity: Seconds between stop checks while waiting.
        """
        self.table = table
        self.state = state
        self.reporter = reporter or Reporter()
        self.interval = interval
        self.poll_granularity = max(0.001, poll_granularity)
        self.phase = Phase.SAMPLING
        self._clock_ticks = clock_ticks_per_second()

    @property
    def tracked(self) -> list[ProcessRecord]:
        """Records whose child is still being polled."""
        return [record for record in self.table if record.tracked]

    def seed_counters(self) -> None:
        """Take the baseline CPU reading every first interval is measured from."""
        for record in self.table:
            if not record.started:
                continue
            ticks = sample_cpu_ticks(record.pid)
            record.last_cpu_ticks = ticks if ticks != NOT_FOUND else 0

    def run(self) -> int:
        """
        Run the loop until it reaches a terminal phase.

        Returns:
            Exit code for the program.
        """
        self.seed_counters()
        while True:
            self.phase = Phase.SAMPLING
            self.sample_and_report()

            if not self.tracked:
                self.phase = Phase.ALL_EXITED
                self.reporter.exiting(int(self.state.elapsed()))
                self.reporter.separator()
                log.debug("all children exited")
                return 0

            self.reporter.separator()
            self.phase = Phase.WAITING
            if self.wait_for_next_interval():
                self.phase = Phase.SHUTDOWN_REQUESTED
                return self.terminate(self.state.elapsed())

    def sample_and_report(self) -> None:
        """Check, sample and report every started child, in index order."""
        self.reporter.separator()
        self.reporter.normal_report()
        self.phase = Phase.REPORTING
        for record in self.table:
            if not record.started:
                continue
            if record.poll_exited():
                self.reporter.exited(record.index)
                continue

            usage = sample_usage(record.pid)
            if usage is None:
                # Only the liveness check decides a child has exited.
                if record.poll_exited():
                    self.reporter.exited(record.index)
                else:
                    log.debug("[%d] pid %d is running but unreadable", record.index, record.pid)
                    self.reporter.running(record.index, 0, 0)
                continue

            cpu_percent = compute_cpu_percent(
                record.last_cpu_ticks, usage.cpu_ticks, self._clock_ticks, self.interval
            )
            record.last_cpu_ticks = usage.cpu_ticks
            self.reporter.running(record.index, cpu_percent, usage.memory_mb)

    def wait_for_next_interval(self) -> bool:
        """
        Sleep until the next interval, watching for a stop trigger.

        Returns:
            True if a shutdown was triggered before the interval ended.
        """
        wake_at = time.monotonic() + self.interval
        while True:
            now = time.monotonic()
            if self.state.should_stop(now):
                log.debug(
                    "stop triggered after %.2fs (interrupt: %s)",
                    self.state.elapsed(now),
                    self.state.stop_requested,
                )
                return True
            remaining = wake_at - now
            if remaining <= 0:
                return False
            time.sleep(min(self.poll_granularity, remaining))

    def terminate(self, elapsed_seconds: float) -> int:
        """
        Kill every child still running and print the final report.

        This is the last thing the supervisor does; the caller exits with
        the returned code.
        """
        if self.state.stop_requested:
            self.reporter.signal_received()
        self.reporter.terminating()
        for record in self.table:
            if not record.started:
                continue
            if record.poll_exited():
                self.reporter.exited(record.index)
                continue
            log.debug("[%d] killing pid %d", record.index, record.pid)
            record.process.kill()
            record.process.wait()
            record.exited = True
            self.reporter.terminated(record.index)
        self.reporter.exiting(int(elapsed_seconds))
        return 0
