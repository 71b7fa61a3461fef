"""Data models for pyvisor."""

import subprocess
import threading
import time
from dataclasses import dataclass, field

# Returned by the sampler when the process information is gone.
NOT_FOUND = -1


@dataclass(slots=True, frozen=True)
class UsageSample:
    """Immutable snapshot of a child's resource usage."""

    cpu_ticks: int  # user + kernel ticks since the child started
    memory_mb: int


@dataclass(slots=True)
class ProcessRecord:
    """One slot of the process table, created per input line."""

    index: int
    command_line: str
    path: str = ""
    pid: int | None = None  # None means "not started"
    process: subprocess.Popen | None = field(default=None, repr=False)
    last_cpu_ticks: int = 0
    exited: bool = False

    @property
    def started(self) -> bool:
        """True when the launch produced a live child."""
        return self.pid is not None

    @property
    def tracked(self) -> bool:
        """True while the child is still polled by the supervision loop."""
        return self.started and not self.exited

    def poll_exited(self) -> bool:
        """
        Non-blocking liveness check.

        Marks the record exited once the child has terminated and returns
        whether it has.
        """
        if self.exited:
            return True
        if self.process is None or self.process.poll() is not None:
            self.exited = True
        return self.exited


@dataclass(slots=True)
class SupervisorState:
    """
    Run-wide state shared by the supervision loop and the interrupt handler.

    The stop flag is only ever set, never cleared. Reads go through
    ``Event.is_set()`` which takes no lock, so setting it from a signal
    handler cannot deadlock the loop.
    """

    time_limit: int | None = None
    start_time: float = field(default_factory=time.monotonic)
    stop_event: threading.Event = field(default_factory=threading.Event)

    def request_stop(self) -> None:
        """Flag the loop to shut down."""
        self.stop_event.set()

    @property
    def stop_requested(self) -> bool:
        """Check if a stop was requested."""
        return self.stop_event.is_set()

    def elapsed(self, now: float | None = None) -> float:
        """Seconds since the supervisor started."""
        if now is None:
            now = time.monotonic()
        return now - self.start_time

    def deadline_reached(self, now: float | None = None) -> bool:
        """Check the configured time limit, if any."""
        return self.time_limit is not None and self.elapsed(now) >= self.time_limit

    def should_stop(self, now: float | None = None) -> bool:
        """Check if either shutdown trigger fired."""
        return self.stop_requested or self.deadline_reached(now)
