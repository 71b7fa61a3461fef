"""Child process launching for pyvisor."""

import errno
import logging
import subprocess
import time
from collections.abc import Iterable

from pyvisor.config import LAUNCH_GRACE_PERIOD
from pyvisor.errors import SpawnError
from pyvisor.models import ProcessRecord
from pyvisor.report import Reporter

log = logging.getLogger(__name__)

# errno values meaning the OS could not create another process at all.
_SPAWN_EXHAUSTED = {errno.EAGAIN, errno.ENOMEM}


def split_command(line: str) -> list[str]:
    """Split a command line on spaces, ignoring empty tokens."""
    return [token for token in line.split(" ") if token]


def launch(index: int, command_line: str, grace_period: float = LAUNCH_GRACE_PERIOD) -> ProcessRecord:
    """
    Start one child process.

    Failures to start are recorded on the returned ProcessRecord (pid None)
    rather than raised, so a bad line never affects its siblings.

    Args:
        index: Display index of the line in the process list.
        command_line: Program followed by space-separated arguments.
        grace_period: Seconds to wait before checking that the child survived
            its start. A child that has already exited by then counts as
            failed to start.

    Raises:
        SpawnError: The OS is out of resources for new processes.
    """
    record = ProcessRecord(index=index, command_line=command_line)
    args = split_command(command_line)
    if not args:
        log.debug("[%d] empty command line", index)
        return record

    record.path = args[0]
    try:
        process = subprocess.Popen(args)
    except MemoryError as exc:
        raise SpawnError(f"cannot spawn {record.path}: out of memory") from exc
    except OSError as exc:
        if isinstance(exc, BlockingIOError) or exc.errno in _SPAWN_EXHAUSTED:
            raise SpawnError(f"cannot spawn {record.path}: {exc.strerror}") from exc
        log.debug("[%d] exec of %s failed: %s", index, record.path, exc)
        return record

    time.sleep(grace_period)
    returncode = process.poll()
    if returncode is not None:
        log.debug("[%d] %s exited during grace period (code %s)", index, record.path, returncode)
        return record

    record.pid = process.pid
    record.process = process
    return record


def launch_all(
    commands: Iterable[str],
    reporter: Reporter,
    grace_period: float = LAUNCH_GRACE_PERIOD,
) -> list[ProcessRecord]:
    """
    Launch every command in order and report each outcome.

    Returns:
        The process table: one record per command, in input order.
    """
    table: list[ProcessRecord] = []
    for index, command_line in enumerate(commands):
        try:
            record = launch(index, command_line, grace_period=grace_period)
        except SpawnError:
            # Don't leave orphans behind when the whole run is aborted.
            for started in table:
                if started.process is not None and not started.poll_exited():
                    started.process.kill()
                    started.process.wait()
            raise
        if record.started:
            reporter.started(record.index, record.path, record.pid)
        else:
            reporter.failed_to_start(record.index, record.path)
        table.append(record)
    return table
