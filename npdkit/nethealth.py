"""Quick HTTP download check of network bandwidth and data integrity.

Exits non-zero on timeout, corruption or when the bandwidth is below the
required minimum.
"""

from __future__ import annotations

import argparse
import hashlib
import logging
import time
import urllib.error
import urllib.request

log = logging.getLogger(__name__)

DEFAULT_URL = "http://storage.googleapis.com/k8s-bandwidth-test/64MB.bin"
DEFAULT_HASH_URL = "http://storage.googleapis.com/k8s-bandwidth-test/sha512.txt"
DEFAULT_LENGTH = 64 * 1024 * 1024
DEFAULT_TIMEOUT = 30
DEFAULT_MINIMUM = 10

_CHUNK_SIZE = 64 * 1024


class NetHealthError(Exception):
    """Raised when a network health check fails."""


def parse_hash_file(content) -> str:
    """Return the hash from a ``<label> <hex digest>`` hash file."""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    parts = content.split(" ")
    if len(parts) <= 1:
        raise NetHealthError(f"Could not parse SHA hash file contents ({content})")
    return parts[1].strip("\n ")


def bandwidth_kib_per_sec(length: int, elapsed_ms: int) -> int:
    """Bandwidth in whole KiB per second for ``length`` bytes in ``elapsed_ms``."""
    if elapsed_ms <= 0:
        raise ValueError(f"elapsed time must be positive, got {elapsed_ms} ms")
    return (length * 1000) // (elapsed_ms * 1024)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nethealth", description="Check HTTP download bandwidth and integrity."
    )
    parser.add_argument("--url", default=DEFAULT_URL, help="Blob URL")
    parser.add_argument("--hashurl", default=DEFAULT_HASH_URL, help="Blob Hash URL")
    parser.add_argument("--length", type=int, default=DEFAULT_LENGTH, help="Expected content length")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT, help="Maximum Seconds to wait")
    parser.add_argument(
        "--minimum",
        type=int,
        default=DEFAULT_MINIMUM,
        help="Minimum bandwidth expected (MiB/sec)",
    )
    return parser


def _open(url: str, method: str, timeout=None):
    request = urllib.request.Request(url, method=method)
    try:
        return urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        # An error status is still a response; its headers are checked as usual.
        return exc


def _content_length(response) -> int:
    try:
        return int(response.headers.get("Content-Length", ""))
    except ValueError:
        return -1


class _Deadline:
    def __init__(self, seconds: int) -> None:
        self.seconds = seconds
        self.end = time.monotonic() + seconds

    def error(self) -> NetHealthError:
        return NetHealthError(
            f"ERROR: Timeout ({self.seconds}) seconds occurred before GET finished - "
            "declaring TOO SLOW"
        )

    def remaining(self) -> float:
        remaining = self.end - time.monotonic()
        if remaining <= 0:
            raise self.error()
        return remaining


def _get(url: str, deadline: _Deadline):
    try:
        return _open(url, "GET", deadline.remaining())
    except TimeoutError:
        raise deadline.error() from None
    except (OSError, ValueError) as exc:
        raise NetHealthError(f"Failure ({exc}) while reading {url}") from exc


def _read_all(response, deadline: _Deadline, what: str) -> bytes:
    chunks = []
    try:
        with response:
            while chunk := response.read(_CHUNK_SIZE):
                chunks.append(chunk)
                deadline.remaining()
    except TimeoutError:
        raise deadline.error() from None
    except OSError as exc:
        raise NetHealthError(f"Failed to read full content{what} {exc}") from exc
    return b"".join(chunks)


def _head(url: str, failure: str) -> int:
    try:
        response = _open(url, "HEAD")
    except (OSError, ValueError) as exc:
        raise NetHealthError(f"{failure} {url} ({exc})") from exc
    with response:
        return _content_length(response)


def _check(args) -> None:
    length = _head(args.url, "Failed to find URL")
    if length != args.length:
        raise NetHealthError(
            f"Length reported ({length}) is not equal to expected length ({args.length})"
        )
    log.info("HTTP HEAD reports content length: %d - running GET", length)
    _head(args.hashurl, "Failed to find hash URL")

    start = time.monotonic()
    deadline = _Deadline(args.timeout)
    response = _get(args.url, deadline)
    length = _content_length(response)
    if length != args.length:
        response.close()
        raise NetHealthError(
            f"Length reported ({length}) is not equal to expected length ({args.length})"
        )
    blob = _read_all(response, deadline, "")

    elapsed_ms = int((time.monotonic() - start) * 1000)
    bandwidth = bandwidth_kib_per_sec(length, max(elapsed_ms, 1))
    log.info("DOWNLOAD: %d bytes %d ms Bandwidth ~ %d KiB/sec", length, elapsed_ms, bandwidth)
    if args.minimum * 1024 > bandwidth:
        raise NetHealthError(
            f"ERROR: Minimum bandwidth guarantee of {args.minimum} MiB/sec not met - "
            "network connectivity is slow"
        )

    content = _read_all(_get(args.hashurl, deadline), deadline, " of hash file")
    expected = parse_hash_file(content)
    computed = hashlib.sha512(blob).hexdigest()
    if computed != expected:
        raise NetHealthError(
            f"ERROR: Hash Mismatch - Computed hash = '{computed}' Expected hash = '{expected}'"
        )
    log.info("Hash Matches expected value")


def main(argv=None) -> int:
    """Run the check; returns 0 on success and 1 on any failure."""
    args = _build_parser().parse_args(argv)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    try:
        _check(args)
    except NetHealthError as exc:
        log.error("%s", exc)
        return 1
    return 0