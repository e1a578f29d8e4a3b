"""Start child processes so that they can be killed along with their descendants."""

from __future__ import annotations

import ntpath
import os
import signal
import subprocess
import sys

_POWERSHELL_FLAGS = ("-NoLogo", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "RemoteSigned")

# taskkill exits with ERROR_WAIT_NO_CHILDREN when the process is already gone.
_TASKKILL_NO_PROCESS = 128


class Command:
    """A command line that runs as its own process group."""

    def __init__(self, args):
        self.args = list(args)
        self._process: subprocess.Popen | None = None

    def __repr__(self) -> str:
        return f"Command({self.args!r})"

    @property
    def pid(self) -> int | None:
        """Process id, or None when not started."""
        return None if self._process is None else self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit status once the process has been waited for."""
        return None if self._process is None else self._process.returncode

    def start(self) -> None:
        """Start the process; raises OSError if it cannot be run."""
        if self._process is not None:
            raise RuntimeError(f"{self!r} has already been started")
        options = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }
        if os.name != "nt":
            options["start_new_session"] = True
        self._process = subprocess.Popen(self.args, **options)

    def kill(self) -> None:
        """Kill the process and every process it started."""
        if self._process is None:
            raise RuntimeError(f"{self!r} does not have a process handle")
        if os.name == "nt":
            _taskkill(self._process.pid)
            return
        try:
            os.killpg(self._process.pid, signal.SIGKILL)
        except ProcessLookupError:
            if self._process.poll() is None:
                raise

    def wait(self, timeout=None) -> int:
        """Wait for the process to end and return its exit status."""
        if self._process is None:
            raise RuntimeError(f"{self!r} does not have a process handle")
        return self._process.wait(timeout)


def _taskkill(pid: int) -> None:
    result = subprocess.run(
        ["TASKKILL", "/T", "/F", "/PID", str(pid)],
        stdout=sys.stdout,
        stderr=sys.stderr,
        check=False,
    )
    if result.returncode in (0, _TASKKILL_NO_PROCESS):
        return
    raise subprocess.CalledProcessError(result.returncode, result.args)


def powershell(*args: str) -> Command:
    """Build a non-interactive PowerShell command with the given arguments."""
    return Command(["powershell.exe", *_POWERSHELL_FLAGS, *args])


def make_command(name: str, *args: str) -> Command:
    """Build a command; on Windows, scripts are run through their shell."""
    if os.name != "nt":
        return Command([name, *args])

    name = ntpath.normpath(name)
    extension = ntpath.splitext(name)[1].lower()
    if extension in (".cmd", ".bat"):
        return Command(["cmd.exe", "/C", name, *args])
    if extension == ".ps1":
        return powershell(name, *args)
    return Command([name, *args])