"""Metric definitions, views and their in-process aggregation."""

from __future__ import annotations

import operator
import threading
from dataclasses import dataclass, field
from enum import Enum

_MAX_TAG_LENGTH = 255


class Aggregation(str, Enum):
    """How measurements are folded into a data point."""

    # The last measurement overwrites earlier ones (gauge).
    LAST_VALUE = "LastValue"
    # Measurements are added onto earlier ones (counter).
    SUM = "Sum"


class MetricID(str, Enum):
    """Identifiers of the metrics the detector can export."""

    CPU_RUNNABLE_TASK_COUNT = "cpu/runnable_task_count"
    CPU_USAGE_TIME = "cpu/usage_time"
    CPU_LOAD_1M = "cpu/load_1m"
    CPU_LOAD_5M = "cpu/load_5m"
    CPU_LOAD_15M = "cpu/load_15m"
    PROBLEM_COUNTER = "problem_counter"
    PROBLEM_GAUGE = "problem_gauge"
    DISK_IO_TIME = "disk/io_time"
    DISK_WEIGHTED_IO = "disk/weighted_io"
    DISK_AVG_QUEUE_LEN = "disk/avg_queue_len"
    DISK_OPS_COUNT = "disk/operation_count"
    DISK_MERGED_OPS_COUNT = "disk/merged_operation_count"
    DISK_OPS_BYTES = "disk/operation_bytes_count"
    DISK_OPS_TIME = "disk/operation_time"
    DISK_BYTES_USED = "disk/bytes_used"
    HOST_UPTIME = "host/uptime"
    MEMORY_BYTES_USED = "memory/bytes_used"
    MEMORY_ANONYMOUS_USED = "memory/anonymous_used"
    MEMORY_PAGE_CACHE_USED = "memory/page_cache_used"
    MEMORY_UNEVICTABLE_USED = "memory/unevictable_used"
    MEMORY_DIRTY_USED = "memory/dirty_used"
    OS_FEATURE = "system/os_feature"
    SYSTEM_PROCESSES_TOTAL = "system/processes_total"
    SYSTEM_PROCS_RUNNING = "system/procs_running"
    SYSTEM_PROCS_BLOCKED = "system/procs_blocked"
    SYSTEM_INTERRUPTS_TOTAL = "system/interrupts_total"
    SYSTEM_CPU_STAT = "system/cpu_stat"
    NET_DEV_RX_BYTES = "net/rx_bytes"
    NET_DEV_RX_PACKETS = "net/rx_packets"
    NET_DEV_RX_ERRORS = "net/rx_errors"
    NET_DEV_RX_DROPPED = "net/rx_dropped"
    NET_DEV_RX_FIFO = "net/rx_fifo"
    NET_DEV_RX_FRAME = "net/rx_frame"
    NET_DEV_RX_COMPRESSED = "net/rx_compressed"
    NET_DEV_RX_MULTICAST = "net/rx_multicast"
    NET_DEV_TX_BYTES = "net/tx_bytes"
    NET_DEV_TX_PACKETS = "net/tx_packets"
    NET_DEV_TX_ERRORS = "net/tx_errors"
    NET_DEV_TX_DROPPED = "net/tx_dropped"
    NET_DEV_TX_FIFO = "net/tx_fifo"
    NET_DEV_TX_COLLISIONS = "net/tx_collisions"
    NET_DEV_TX_CARRIER = "net/tx_carrier"
    NET_DEV_TX_COMPRESSED = "net/tx_compressed"


class MetricMapping:
    """Thread-safe mapping from view names to metric identifiers."""

    def __init__(self) -> None:
        self._view_to_id: dict[str, MetricID] = {}
        self._lock = threading.Lock()

    def add_mapping(self, metric_id: MetricID, view_name: str) -> None:
        """Remember that ``view_name`` exports ``metric_id``."""
        with self._lock:
            self._view_to_id[view_name] = metric_id

    def view_name_to_metric_id(self, view_name: str) -> MetricID | None:
        """Return the metric id of ``view_name``, or None if it is unknown."""
        with self._lock:
            return self._view_to_id.get(view_name)


METRIC_MAP = MetricMapping()


@dataclass
class Float64MetricRepresentation:
    """Snapshot of a float metric: its name, labels and value."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    value: float = 0.0


@dataclass
class Int64MetricRepresentation:
    """Snapshot of an integer metric: its name, labels and value."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    value: int = 0


_tag_keys: set[str] = set()
_tag_lock = threading.Lock()

_views: dict[str, _View] = {}
_views_lock = threading.Lock()


def _is_valid_tag_text(text: str) -> bool:
    return 0 < len(text) <= _MAX_TAG_LENGTH and all(" " <= char <= "~" for char in text)


def _register_tag_names(tag_names) -> tuple[str, ...]:
    names = tuple(tag_names)
    with _tag_lock:
        for name in names:
            if name in _tag_keys:
                continue
            if not _is_valid_tag_text(name):
                raise ValueError(
                    f"failed to create tag {name!r}: invalid key name: only printable ASCII "
                    f"characters accepted; max length must be {_MAX_TAG_LENGTH} characters"
                )
            _tag_keys.add(name)
    return names


class _View:
    """Aggregated data of one measure, keyed by its tag values."""

    def __init__(self, name, description, unit, aggregation, tag_keys, representation):
        self.name = name
        self.description = description
        self.unit = unit
        self.aggregation = aggregation
        self.tag_keys = frozenset(tag_keys)
        self.representation = representation
        self._rows: dict[frozenset, float] = {}
        self._lock = threading.Lock()

    def add(self, tags: dict[str, str], measurement) -> None:
        key = frozenset((name, value) for name, value in tags.items() if name in self.tag_keys)
        with self._lock:
            if self.aggregation is Aggregation.SUM:
                self._rows[key] = self._rows.get(key, 0) + measurement
            else:
                self._rows[key] = measurement

    def snapshot(self) -> list:
        with self._lock:
            return [self.representation(self.name, dict(key), value) for key, value in self._rows.items()]


class _Metric:
    _representation: type = Float64MetricRepresentation

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def _record(self, tags: dict[str, str], measurement) -> None:
        with _tag_lock:
            for tag_name in tags:
                if tag_name not in _tag_keys:
                    raise ValueError(
                        f"referencing non-existing tag {tag_name!r} in metric {self.name!r}"
                    )
        for tag_name, tag_value in tags.items():
            if not _is_valid_tag_text(tag_value):
                raise ValueError(f"invalid value {tag_value!r} for tag {tag_name!r}")
        with _views_lock:
            view = _views.get(self.name)
        if view is None:
            raise LookupError(f"view {self.name!r} is not registered")
        view.add(tags, measurement)


class Float64Metric(_Metric):
    """A metric whose measurements are floats."""

    _representation = Float64MetricRepresentation

    def record(self, tags: dict[str, str], measurement: float) -> None:
        """Record a measurement, using ``tags`` as metric labels."""
        self._record(tags, float(measurement))


class Int64Metric(_Metric):
    """A metric whose measurements are integers."""

    _representation = Int64MetricRepresentation

    def record(self, tags: dict[str, str], measurement: int) -> None:
        """Record a measurement, using ``tags`` as metric labels."""
        self._record(tags, operator.index(measurement))


def _new_metric(cls, metric_id, view_name, description, unit, aggregation, tag_names):
    if not view_name:
        return None

    METRIC_MAP.add_mapping(metric_id, view_name)

    try:
        tag_keys = _register_tag_names(tag_names)
    except ValueError as exc:
        raise ValueError(
            f"failed to create metric {view_name!r} because of tag creation failure: {exc}"
        ) from exc

    try:
        method = Aggregation(aggregation)
    except ValueError:
        raise ValueError(f"unknown aggregation option {aggregation!r}") from None

    with _views_lock:
        # A view registered earlier under the same name keeps its definition and data.
        if view_name not in _views:
            _views[view_name] = _View(
                view_name, description, unit, method, tag_keys, cls._representation
            )
    return cls(view_name)


def new_float64_metric(metric_id, view_name, description, unit, aggregation, tag_names):
    """Create and register a float metric; returns None when ``view_name`` is empty."""
    return _new_metric(Float64Metric, metric_id, view_name, description, unit, aggregation, tag_names)


def new_int64_metric(metric_id, view_name, description, unit, aggregation, tag_names):
    """Create and register an integer metric; returns None when ``view_name`` is empty."""
    return _new_metric(Int64Metric, metric_id, view_name, description, unit, aggregation, tag_names)


def get_view_data(view_name: str) -> list:
    """Return the current data points of a registered view.

    Raises KeyError when no view of that name has been registered.
    """
    with _views_lock:
        view = _views.get(view_name)
    if view is None:
        raise KeyError(view_name)
    return view.snapshot()