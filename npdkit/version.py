"""Version of the problem detector tools."""

import sys

VERSION = "UNKNOWN"


def get_version() -> str:
    """Return the version string."""
    return VERSION


def print_version() -> str:
    """Write the version string, newline-terminated, on standard output and return it."""
    line = f"{get_version()}\n"
    sys.stdout.write(line)
    sys.stdout.flush()
    return line