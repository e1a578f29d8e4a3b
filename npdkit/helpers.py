"""Time, uptime and operating-system helpers used by the problem detector."""

from __future__ import annotations

import re
import sys
import time
from datetime import datetime, timedelta
from fractions import Fraction

import psutil

OS_RELEASE_PATH = "/etc/os-release"

_NANOSECONDS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_DURATION_ELEMENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")

_DEBIAN_STYLE_IDS = frozenset({"debian", "ubuntu", "centos", "rhel", "ol", "amzn", "sles"})

_OS_RELEASE_ESCAPE = re.compile(r'\\([$"`\\])')


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Accepts the units ns, us (or µs), ms, s, m and h. A bare ``"0"`` is
    allowed; every other number needs a unit. Raises ValueError otherwise.
    """
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_ELEMENT.match(rest, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration {text!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        scale = _NANOSECONDS_PER_UNIT.get(unit)
        if scale is None:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        value = Fraction(int(whole or "0"))
        if fraction:
            value += Fraction(int(fraction), 10 ** len(fraction))
        total += value * scale
        pos = match.end()

    microseconds = round(total / 1000)
    return timedelta(microseconds=-microseconds if negative else microseconds)


def get_start_time(now: datetime, uptime: timedelta, lookback: str, delay: str) -> datetime:
    """Work out where log watching should start.

    The start is the boot time, pushed later by ``delay`` and never earlier
    than ``now - lookback``. Empty strings mean no delay and no lookback limit.
    """
    start = now - uptime

    # When delay exceeds uptime the start lies after now, which is intended.
    if delay:
        try:
            start += parse_duration(delay)
        except ValueError as exc:
            raise ValueError(f"failed to parse delay duration {delay!r}: {exc}") from exc

    lookback_start = now
    if lookback:
        try:
            lookback_start = now - parse_duration(lookback)
        except ValueError as exc:
            raise ValueError(f"failed to parse lookback duration {lookback!r}: {exc}") from exc

    return max(start, lookback_start)


def get_uptime_duration() -> timedelta:
    """Return the time elapsed since the last boot, in whole seconds."""
    return timedelta(seconds=int(time.time() - psutil.boot_time()))


def parse_os_release(text: str) -> dict[str, str]:
    """Parse the KEY=value lines of an os-release file into a dict."""
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        fields[key.strip()] = _OS_RELEASE_ESCAPE.sub(r"\1", value)
    return fields


def read_os_version(path: str) -> str:
    """Describe the operating system from the os-release file at ``path``.

    Raises OSError when the file cannot be read and ValueError when its ID
    is not a supported distribution.
    """
    with open(path, encoding="utf-8") as handle:
        fields = parse_os_release(handle.read())

    os_id = fields.get("ID", "")
    if os_id == "cos":
        return f"{os_id} {fields.get('VERSION', '')}-{fields.get('BUILD_ID', '')}"
    if os_id in _DEBIAN_STYLE_IDS:
        return f"{os_id} {fields.get('VERSION', '')}"
    raise ValueError(f'Unsupported ID in /etc/os-release: "{os_id}"')


def _windows_os_version() -> str:
    import winreg

    with winreg.OpenKey(
        winreg.HKEY_LOCAL_MACHINE,
        r"SOFTWARE\Microsoft\Windows NT\CurrentVersion",
        0,
        winreg.KEY_QUERY_VALUE,
    ) as key:
        try:
            product_name = str(winreg.QueryValueEx(key, "ProductName")[0])
        except OSError:
            product_name = "windows"
        try:
            ubr = int(winreg.QueryValueEx(key, "UBR")[0])
        except OSError:
            ubr = 0

    info = sys.getwindowsversion()
    return f"windows {info.major}.{info.minor}.{info.build}.{ubr} ({product_name})"


def get_os_version() -> str:
    """Describe the running operating system, e.g. ``"ubuntu 16.04.6 LTS (Xenial Xerus)"``."""
    if sys.platform == "win32":
        return _windows_os_version()
    return read_os_version(OS_RELEASE_PATH)