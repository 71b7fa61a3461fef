"""Exceptions raised by pyvisor."""


class PyvisorError(Exception):
    """Base class for fatal supervisor errors."""


class ProcessListError(PyvisorError):
    """The process list file could not be read."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} not found")
        self.path = path


class SpawnError(PyvisorError):
    """The OS refused to create another process."""
