"""Lifecycle control for a worker thread."""

from __future__ import annotations

import threading


class Tomb:
    """Lets one side ask a worker to stop and wait until it has."""

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._done = threading.Event()

    def stop(self) -> None:
        """Ask the worker to stop and block until it reports done."""
        if self._stop.is_set():
            raise RuntimeError("tomb is already stopped")
        self._stop.set()
        self._done.wait()

    def stopping(self) -> threading.Event:
        """Event the worker waits on; it is set once a stop is requested."""
        return self._stop

    def done(self) -> None:
        """Report from the worker that it has stopped."""
        if self._done.is_set():
            raise RuntimeError("tomb is already done")
        self._done.set()