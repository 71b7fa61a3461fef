"""Allow running pyvisor with ``python -m pyvisor``."""

from pyvisor.cli import main

main()
