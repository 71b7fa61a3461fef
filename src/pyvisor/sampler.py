"""Per-process CPU and memory sampling for pyvisor."""

import logging
import os

import psutil

from pyvisor.models import NOT_FOUND, UsageSample

log = logging.getLogger(__name__)

# Memory is reported in buckets of 1024 pages.
PAGES_PER_MB = 1024


def clock_ticks_per_second() -> int:
    """Get the host's CPU accounting resolution (SC_CLK_TCK)."""
    return os.sysconf("SC_CLK_TCK")


def page_size() -> int:
    """Get the host's memory page size in bytes."""
    return os.sysconf("SC_PAGE_SIZE")


def _cpu_ticks(proc: psutil.Process) -> int:
    # psutil converts the kernel's tick counters to seconds; undo that so the
    # loop can work with whole ticks.
    times = proc.cpu_times()
    return round((times.user + times.system) * clock_ticks_per_second())


def _memory_mb(proc: psutil.Process) -> int:
    # On Linux memory_info() mirrors /proc/<pid>/statm, scaled to bytes.
    pages = sum(proc.memory_info()) // page_size()
    return pages // PAGES_PER_MB


def sample_cpu_ticks(pid: int) -> int:
    """
    Read the cumulative user + kernel CPU ticks of a process.

    Args:
        pid: Process identifier to read.

    Returns:
        Ticks since the process started, or NOT_FOUND if the process is gone.
    """
    try:
        return _cpu_ticks(psutil.Process(pid))
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        log.debug("cpu sample for pid %d: process gone", pid)
        return NOT_FOUND


def sample_memory_mb(pid: int) -> int:
    """
    Read the memory attributed to a process, in MB.

    Args:
        pid: Process identifier to read.

    Returns:
        Summed page counts divided by 1024, or NOT_FOUND if the process is gone.
    """
    try:
        return _memory_mb(psutil.Process(pid))
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        log.debug("memory sample for pid %d: process gone", pid)
        return NOT_FOUND


def sample_usage(pid: int) -> UsageSample | None:
    """
    Read both counters of a process in a single pass.

    Uses psutil's oneshot() so the stat files are read once per poll.
    Returns None if the process disappeared.
    """
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            return UsageSample(cpu_ticks=_cpu_ticks(proc), memory_mb=_memory_mb(proc))
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        log.debug("usage sample for pid %d: process gone", pid)
        return None
