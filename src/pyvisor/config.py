"""Process list loading and default timings for pyvisor."""

import logging
from dataclasses import dataclass, field

from pyvisor.errors import ProcessListError

log = logging.getLogger(__name__)

REPORT_INTERVAL = 5.0  # seconds between normal reports
POLL_GRANULARITY = 0.02  # seconds between stop checks while waiting
LAUNCH_GRACE_PERIOD = 0.1  # seconds before checking a new child for exec failure

TIMELIMIT_KEYWORD = "timelimit"


@dataclass(slots=True)
class ProcessList:
    """Parsed contents of a process list file."""

    time_limit: int | None = None
    commands: list[str] = field(default_factory=list)


def parse_time_limit(line: str) -> int | None:
    """
    Parse a ``timelimit <seconds>`` line.

    Returns the number of seconds, or None if the line is not a time limit.
    """
    tokens = [token for token in line.split(" ") if token]
    if len(tokens) < 2 or tokens[0] != TIMELIMIT_KEYWORD:
        return None
    if not (tokens[1].isascii() and tokens[1].isdigit()):
        return None
    return int(tokens[1])


def parse_process_list(lines: list[str]) -> ProcessList:
    """Build a ProcessList from the lines of an input file."""
    process_list = ProcessList()
    if lines:
        time_limit = parse_time_limit(lines[0])
        if time_limit is not None:
            process_list.time_limit = time_limit
            lines = lines[1:]
    process_list.commands = list(lines)
    return process_list


def load_process_list(path: str) -> ProcessList:
    """
    Read a process list file.

    Args:
        path: Path to a text file with one command per line.

    Raises:
        ProcessListError: The file could not be opened or read.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as exc:
        log.debug("cannot read %s: %s", path, exc)
        raise ProcessListError(path) from exc

    process_list = parse_process_list(lines)
    log.debug(
        "loaded %d commands from %s (time limit: %s)",
        len(process_list.commands),
        path,
        process_list.time_limit,
    )
    return process_list
