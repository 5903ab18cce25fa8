"""Entry point for running looseleaf as a module.

This module allows looseleaf to be run as a Python module using the -m flag:
    python -m looseleaf
"""

from . import cli

if __name__ == "__main__":
    cli._main()
