"""Parsing of the Prometheus text exposition format."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from npdkit.metrics import Float64MetricRepresentation

_METRIC_NAME = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_METRIC_TYPES = frozenset({"counter", "gauge", "summary", "histogram", "untyped"})
_SUMMARY_SUFFIXES = ("_sum", "_count")
_HISTOGRAM_SUFFIXES = ("_sum", "_count", "_bucket")
_ESCAPES = {"\\": "\\", '"': '"', "n": "\n"}


class PrometheusParseError(ValueError):
    """Raised when metrics text cannot be parsed or holds an unsupported type."""


@dataclass
class _Family:
    name: str
    type: str | None = None
    help: str | None = None
    samples: list = field(default_factory=list)


def _error(lineno: int, message: str) -> PrometheusParseError:
    return PrometheusParseError(f"text format parsing error in line {lineno}: {message}")


def _skip_blanks(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] in " \t":
        pos += 1
    return pos


def _read_label_value(line: str, pos: int, lineno: int) -> tuple[str, int]:
    chars = []
    while pos < len(line):
        char = line[pos]
        if char == "\\":
            escaped = line[pos + 1 : pos + 2]
            if escaped not in _ESCAPES:
                raise _error(lineno, f"invalid escape sequence '\\{escaped}'")
            chars.append(_ESCAPES[escaped])
            pos += 2
            continue
        if char == '"':
            return "".join(chars), pos + 1
        chars.append(char)
        pos += 1
    raise _error(lineno, "unterminated label value")


def _parse_labels(line: str, pos: int, lineno: int) -> tuple[dict[str, str], int]:
    labels: dict[str, str] = {}
    while True:
        pos = _skip_blanks(line, pos)
        if pos >= len(line):
            raise _error(lineno, "unterminated label set")
        if line[pos] == "}":
            return labels, pos + 1
        match = _LABEL_NAME.match(line, pos)
        if match is None:
            raise _error(lineno, f"invalid label name at {line[pos:]!r}")
        label = match.group()
        pos = _skip_blanks(line, match.end())
        if line[pos : pos + 1] != "=":
            raise _error(lineno, f"expected '=' after label name {label!r}")
        pos = _skip_blanks(line, pos + 1)
        if line[pos : pos + 1] != '"':
            raise _error(lineno, f"expected '\"' at start of value for label {label!r}")
        value, pos = _read_label_value(line, pos + 1, lineno)
        if label in labels:
            raise _error(lineno, f"duplicate label name {label!r}")
        labels[label] = value
        pos = _skip_blanks(line, pos)
        separator = line[pos : pos + 1]
        if separator == ",":
            pos += 1
        elif separator == "}":
            return labels, pos + 1
        else:
            raise _error(lineno, f"unexpected character {separator!r} in label set")


def _parse_value(token: str, lineno: int) -> float:
    try:
        if "_" in token:
            raise ValueError(token)
        return float(token)
    except ValueError:
        raise _error(lineno, f"expected float as value, got {token!r}") from None


def _parse_sample(line: str, lineno: int) -> tuple[str, dict[str, str], float]:
    match = _METRIC_NAME.match(line)
    if match is None:
        raise _error(lineno, f"invalid metric name in {line!r}")
    name = match.group()
    pos = _skip_blanks(line, match.end())
    labels: dict[str, str] = {}
    if line[pos : pos + 1] == "{":
        labels, pos = _parse_labels(line, pos + 1, lineno)

    fields = line[pos:].split()
    if not fields:
        raise _error(lineno, f"missing value for metric {name!r}")
    if len(fields) > 2:
        raise _error(lineno, f"unexpected text after value: {' '.join(fields[2:])!r}")
    value = _parse_value(fields[0], lineno)
    if len(fields) == 2:
        try:
            int(fields[1])
        except ValueError:
            raise _error(lineno, f"expected integer as timestamp, got {fields[1]!r}") from None
    return name, labels, value


def _family_for_sample(families: dict[str, _Family], name: str) -> _Family:
    family = families.get(name)
    if family is not None:
        return family
    for suffixes, kind in ((_SUMMARY_SUFFIXES, "summary"), (_HISTOGRAM_SUFFIXES, "histogram")):
        for suffix in suffixes:
            if name.endswith(suffix):
                base = families.get(name[: -len(suffix)])
                if base is not None and base.type == kind:
                    return base
    family = _Family(name)
    families[name] = family
    return family


def _parse_comment(families: dict[str, _Family], line: str, lineno: int) -> None:
    tokens = line[1:].strip(" \t").split(None, 2)
    if not tokens or tokens[0] not in ("HELP", "TYPE"):
        return
    keyword = tokens[0]
    if len(tokens) < 2 or _METRIC_NAME.fullmatch(tokens[1]) is None:
        raise _error(lineno, f"invalid metric name in {keyword} line")
    name = tokens[1]
    family = families.get(name)

    if keyword == "HELP":
        if family is None:
            family = families[name] = _Family(name)
        if family.help is not None:
            raise _error(lineno, f"second HELP line for metric name {name!r}")
        family.help = tokens[2] if len(tokens) > 2 else ""
        return

    if family is not None and (family.type is not None or family.samples):
        raise _error(
            lineno, f"second TYPE line for metric name {name!r}, or TYPE reported after samples"
        )
    if len(tokens) < 3:
        raise _error(lineno, f"missing type for metric {name!r}")
    kind = tokens[2].split()[0].lower()
    if kind not in _METRIC_TYPES:
        raise _error(lineno, f"unknown metric type {tokens[2].split()[0]!r}")
    if family is None:
        family = families[name] = _Family(name)
    family.type = kind


def parse_prometheus_metrics(text: str) -> list[Float64MetricRepresentation]:
    """Parse Prometheus text into float metric snapshots.

    Only counter and gauge metrics are accepted; any other type, and any
    malformed line, raises PrometheusParseError.
    """
    families: dict[str, _Family] = {}
    for lineno, raw in enumerate(text.replace("\r", "").split("\n"), start=1):
        line = raw.strip(" \t")
        if not line:
            continue
        if line.startswith("#"):
            _parse_comment(families, line, lineno)
            continue
        name, labels, value = _parse_sample(line, lineno)
        _family_for_sample(families, name).samples.append((labels, value))

    metrics = []
    for family in families.values():
        kind = family.type or "untyped"
        for labels, value in family.samples:
            if kind not in ("counter", "gauge"):
                raise PrometheusParseError(
                    f"unexpected MetricType {kind.upper()} for metric {family.name}"
                )
            metrics.append(Float64MetricRepresentation(family.name, labels, value))
    return metrics


def get_float64_metric(metrics, name: str, labels: dict[str, str], strict_label_matching: bool):
    """Find the first metric with ``name`` whose labels match ``labels``.

    With strict matching the labels must be identical; otherwise the metric's
    labels need only contain them. Raises LookupError when nothing matches.
    """
    for metric in metrics:
        if metric.name != name:
            continue
        if strict_label_matching and len(metric.labels) != len(labels):
            continue
        if all(key in metric.labels and metric.labels[key] == value for key, value in labels.items()):
            return metric
    raise LookupError("no matching metric found")