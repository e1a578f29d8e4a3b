"""Kernel command line and kernel module information read from /proc files."""

from __future__ import annotations

import json
from dataclasses import dataclass

_JSON_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


def _to_json(obj: dict) -> str:
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    return "".join(_JSON_HTML_ESCAPES.get(char, char) for char in text)


@dataclass(frozen=True)
class CmdlineArg:
    """One kernel command-line parameter; ``value`` is empty for bare flags."""

    key: str
    value: str = ""

    def __str__(self) -> str:
        return _to_json({"key": self.key, "value": self.value})


@dataclass(frozen=True)
class Module:
    """A loaded kernel module, its instance count and its taint flags."""

    module_name: str
    instances: int = 0
    proprietary: bool = False
    out_of_tree: bool = False
    unsigned: bool = False

    def __str__(self) -> str:
        return _to_json(
            {
                "moduleName": self.module_name,
                "instances": self.instances,
                "proprietary": self.proprietary,
                "outOfTree": self.out_of_tree,
                "unsigned": self.unsigned,
            }
        )


def read_file_into_lines(path) -> list[str]:
    """Return the lines of a file without their line endings."""
    with open(path, encoding="utf-8", newline="\n") as handle:
        return [line.rstrip("\n").removesuffix("\r") for line in handle]


def contains_module(key: str, values) -> bool:
    """Tell whether a module named ``key`` is among ``values``."""
    return any(module.module_name == key for module in values)


def _split_outside_quotes(line: str) -> list[str]:
    # Parameters are separated by spaces, except for spaces inside double quotes.
    fields: list[str] = []
    current: list[str] = []
    quoted = False
    for char in line:
        if char == '"':
            quoted = not quoted
            current.append(char)
        elif char == " " and not quoted:
            if current:
                fields.append("".join(current))
                current = []
        else:
            current.append(char)
    if current:
        fields.append("".join(current))
    return fields


def cmdline_args(path) -> list[CmdlineArg]:
    """Parse the kernel command line stored in ``path`` (normally /proc/cmdline).

    Raises OSError when the file cannot be read and ValueError when it is empty.
    """
    lines = read_file_into_lines(path)
    if not lines:
        raise ValueError("no lines are returned")

    result = []
    for word in _split_outside_quotes(lines[0]):
        # Parameters that start with a double quote are ignored.
        if word.startswith('"'):
            continue
        tokens = word.split("=")
        if len(tokens) < 2:
            result.append(CmdlineArg(tokens[0]))
        else:
            result.append(CmdlineArg(tokens[0], tokens[1].strip("\"'")))
    return result


def _parse_instances(text: str) -> int:
    if not text.isascii() or not text.isdigit():
        return 0
    value = int(text)
    return value if value < 2**64 else 0


def modules(path) -> list[Module]:
    """Parse the loaded kernel modules listed in ``path`` (normally /proc/modules).

    A line looks like ``nf_nat 61440 2 xt_MASQUERADE, Live 0x0 (O)``: name,
    size, instance count, dependencies, state, offset and, when present, the
    taint flags (P proprietary, O out of tree, E unsigned).
    """
    result = []
    for line in read_file_into_lines(path):
        fields = line.split()
        if len(fields) < 3:
            raise ValueError(f"malformed module line in {path}: {line!r}")
        module = Module(module_name=fields[0], instances=_parse_instances(fields[2]))
        if len(fields) > 6:
            taint = fields[6]
            module = Module(
                module_name=module.module_name,
                instances=module.instances,
                proprietary="P" in taint,
                out_of_tree="O" in taint,
                unsigned="E" in taint,
            )
        result.append(module)
    return result