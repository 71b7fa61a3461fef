"""Tests for the usage sampler."""

import contextlib
import os
import subprocess
from types import SimpleNamespace

import psutil
import pytest

from pyvisor import sampler
from pyvisor.models import NOT_FOUND, UsageSample


class FakeProcess:
    """Stand-in for psutil.Process with fixed counters."""

    def __init__(self, pid: int) -> None:
        self.pid = pid

    def cpu_times(self):
        return SimpleNamespace(user=1.0, system=0.5)

    def memory_info(self):
        # 2 MB resident + 1 MB virtual, in bytes of 4 KiB pages.
        return (4096 * 1024 * 2, 4096 * 1024 * 1)

    def oneshot(self):
        return contextlib.nullcontext()


class GoneProcess:
    """Stand-in for a process that vanished before it could be read."""

    def __init__(self, pid: int) -> None:
        raise psutil.NoSuchProcess(pid)


@pytest.fixture
def exited_pid() -> int:
    """Pid of a child that has exited and been reaped."""
    process = subprocess.Popen(["true"])
    process.wait()
    return process.pid


@pytest.fixture
def fake_host(monkeypatch):
    """Pin the host constants and the psutil process reader."""
    monkeypatch.setattr(sampler, "clock_ticks_per_second", lambda: 100)
    monkeypatch.setattr(sampler, "page_size", lambda: 4096)
    monkeypatch.setattr(psutil, "Process", FakeProcess)


class TestHostConstants:
    """Tests for host constant lookups."""

    def test_clock_ticks_positive(self):
        """Test the clock tick rate is a positive integer."""
        ticks = sampler.clock_ticks_per_second()
        assert isinstance(ticks, int)
        assert ticks > 0

    def test_page_size_positive(self):
        """Test the page size is a positive integer."""
        assert sampler.page_size() > 0


class TestSamplerWithFakeHost:
    """Tests for the tick and page conversions."""

    def test_cpu_ticks_sum_user_and_system(self, fake_host):
        """Test CPU ticks are user + system time converted back to ticks."""
        assert sampler.sample_cpu_ticks(42) == 150

    def test_memory_sums_all_pages(self, fake_host):
        """Test memory is the summed page count divided by 1024."""
        assert sampler.sample_memory_mb(42) == 3

    def test_sample_usage_reads_both(self, fake_host):
        """Test sample_usage returns both readings."""
        assert sampler.sample_usage(42) == UsageSample(cpu_ticks=150, memory_mb=3)

    def test_gone_process_returns_not_found(self, monkeypatch):
        """Test a vanished process yields the NOT_FOUND sentinel."""
        monkeypatch.setattr(psutil, "Process", GoneProcess)
        assert sampler.sample_cpu_ticks(42) == NOT_FOUND
        assert sampler.sample_memory_mb(42) == NOT_FOUND
        assert sampler.sample_usage(42) is None


class TestSamplerWithRealProcesses:
    """Tests against live processes on the host."""

    def test_own_process(self):
        """Test sampling the test runner itself."""
        pid = os.getpid()
        assert sampler.sample_cpu_ticks(pid) >= 0
        assert sampler.sample_memory_mb(pid) >= 0

        usage = sampler.sample_usage(pid)
        assert isinstance(usage, UsageSample)
        assert usage.cpu_ticks >= 0
        assert usage.memory_mb >= 0

    def test_cpu_ticks_are_monotonic(self):
        """Test cumulative ticks never go down while the process lives."""
        pid = os.getpid()
        first = sampler.sample_cpu_ticks(pid)
        sum(range(200_000))
        second = sampler.sample_cpu_ticks(pid)
        assert second >= first

    def test_sleeping_child(self):
        """Test sampling a live child process."""
        process = subprocess.Popen(["sleep", "30"])
        try:
            usage = sampler.sample_usage(process.pid)
            assert usage is not None
            assert usage.cpu_ticks >= 0
        finally:
            process.kill()
            process.wait()

    def test_exited_child_not_found(self, exited_pid):
        """Test a reaped child reports NOT_FOUND instead of raising."""
        assert sampler.sample_cpu_ticks(exited_pid) == NOT_FOUND
        assert sampler.sample_memory_mb(exited_pid) == NOT_FOUND
        assert sampler.sample_usage(exited_pid) is None
