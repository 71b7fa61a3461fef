"""pyvisor - launch a list of commands and report their resource usage."""

__version__ = "0.1.0"
