"""pyvisor - command line entry point."""

import argparse
import logging
import sys

from pyvisor import __version__
from pyvisor.config import LAUNCH_GRACE_PERIOD, POLL_GRANULARITY, REPORT_INTERVAL, load_process_list
from pyvisor.errors import PyvisorError
from pyvisor.launcher import launch_all
from pyvisor.models import SupervisorState
from pyvisor.report import Reporter
from pyvisor.supervisor import InterruptHandler, Supervisor

log = logging.getLogger("pyvisor")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pyvisor",
        description=(
            "Start every command listed in a file and report the CPU and memory "
            "usage of each one every few seconds. An optional first line "
            "'timelimit <seconds>' kills everything once the limit is reached."
        ),
    )
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        metavar="FILE",
        help="process list file, one command per line",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log diagnostics to stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def execute(
    path: str,
    reporter: Reporter | None = None,
    interval: float = REPORT_INTERVAL,
    poll_granularity: float = POLL_GRANULARITY,
    grace_period: float = LAUNCH_GRACE_PERIOD,
) -> int:
    """
    Launch the commands in a process list and supervise them to the end.

    Returns:
        Exit code of the run.

    Raises:
        PyvisorError: The list could not be read or no process could be spawned.
    """
    reporter = reporter or Reporter()
    process_list = load_process_list(path)
    state = SupervisorState(time_limit=process_list.time_limit)
    handler = InterruptHandler(state)
    handler.install()
    try:
        reporter.starting()
        table = launch_all(process_list.commands, reporter, grace_period=grace_period)
        supervisor = Supervisor(
            table,
            state,
            reporter=reporter,
            interval=interval,
            poll_granularity=poll_granularity,
        )
        return supervisor.run()
    finally:
        handler.restore()


def main() -> None:
    """Entry point for the pyvisor command."""
    args = build_parser().parse_args()
    logging.basicConfig(
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )
    try:
        code = execute(args.input)
    except PyvisorError as exc:
        log.debug("fatal: %r", exc)
        print(f"pyvisor: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
