import uuid

import pytest

from npdkit.metrics import (
    METRIC_MAP,
    Aggregation,
    Float64MetricRepresentation,
    Int64MetricRepresentation,
    MetricID,
    MetricMapping,
    get_view_data,
    new_float64_metric,
    new_int64_metric,
)


@pytest.fixture
def view_name():
    return f"test/{uuid.uuid4().hex}"


def _by_labels(rows):
    return {tuple(sorted(row.labels.items())): row.value for row in rows}


@pytest.mark.parametrize("factory", [new_float64_metric, new_int64_metric])
def test_empty_view_name_returns_none(factory):
    assert factory(MetricID.HOST_UPTIME, "", "desc", "1", Aggregation.SUM, []) is None


def test_metric_creation_adds_mapping(view_name):
    metric = new_int64_metric(MetricID.PROBLEM_COUNTER, view_name, "desc", "1", Aggregation.SUM, ["reason"])
    assert metric.name == view_name
    assert METRIC_MAP.view_name_to_metric_id(view_name) is MetricID.PROBLEM_COUNTER


def test_metric_mapping_lookup_and_overwrite():
    mapping = MetricMapping()
    assert mapping.view_name_to_metric_id("view") is None
    mapping.add_mapping(MetricID.CPU_LOAD_1M, "view")
    assert mapping.view_name_to_metric_id("view") is MetricID.CPU_LOAD_1M
    mapping.add_mapping(MetricID.CPU_LOAD_5M, "view")
    assert mapping.view_name_to_metric_id("view") is MetricID.CPU_LOAD_5M


def test_sum_aggregation_adds_measurements(view_name):
    metric = new_float64_metric(MetricID.DISK_IO_TIME, view_name, "desc", "ms", Aggregation.SUM, ["device"])
    measurements = [1.5, 2.25, 4.0]
    for value in measurements:
        metric.record({"device": "sda1"}, value)
    rows = get_view_data(view_name)
    assert rows == [Float64MetricRepresentation(view_name, {"device": "sda1"}, sum(measurements))]


def test_last_value_keeps_latest(view_name):
    metric = new_float64_metric(MetricID.CPU_LOAD_1M, view_name, "desc", "1", Aggregation.LAST_VALUE, [])
    metric.record({}, 3.5)
    metric.record({}, 1.25)
    assert get_view_data(view_name) == [Float64MetricRepresentation(view_name, {}, 1.25)]


def test_aggregation_accepts_string(view_name):
    metric = new_int64_metric(MetricID.PROBLEM_GAUGE, view_name, "desc", "1", "LastValue", ["type"])
    metric.record({"type": "KernelDeadlock"}, 1)
    metric.record({"type": "KernelDeadlock"}, 0)
    assert get_view_data(view_name) == [Int64MetricRepresentation(view_name, {"type": "KernelDeadlock"}, 0)]


def test_rows_are_kept_per_tag_values(view_name):
    metric = new_int64_metric(MetricID.PROBLEM_COUNTER, view_name, "desc", "1", Aggregation.SUM, ["reason"])
    metric.record({"reason": "DockerHung"}, 2)
    metric.record({"reason": "OOMKilling"}, 5)
    metric.record({"reason": "DockerHung"}, 3)
    rows = _by_labels(get_view_data(view_name))
    assert rows[(("reason", "DockerHung"),)] == 2 + 3
    assert rows[(("reason", "OOMKilling"),)] == 5
    assert len(rows) == 2


def test_int64_values_stay_integers(view_name):
    metric = new_int64_metric(MetricID.HOST_UPTIME, view_name, "desc", "s", Aggregation.LAST_VALUE, [])
    metric.record({}, 1062)
    (row,) = get_view_data(view_name)
    assert row.value == 1062
    assert isinstance(row.value, int)


def test_int64_rejects_float(view_name):
    metric = new_int64_metric(MetricID.HOST_UPTIME, view_name, "desc", "s", Aggregation.LAST_VALUE, [])
    with pytest.raises(TypeError):
        metric.record({}, 1.5)


def test_unknown_tag_is_rejected(view_name):
    metric = new_float64_metric(MetricID.CPU_USAGE_TIME, view_name, "desc", "s", Aggregation.SUM, [])
    with pytest.raises(ValueError, match="never_registered_tag_q7"):
        metric.record({"never_registered_tag_q7": "x"}, 1.0)
    assert get_view_data(view_name) == []


def test_unknown_aggregation_is_rejected(view_name):
    with pytest.raises(ValueError, match="unknown aggregation option"):
        new_float64_metric(MetricID.CPU_USAGE_TIME, view_name, "desc", "s", "Median", [])


@pytest.mark.parametrize("bad_tag", ["", "caf\u00e9", "x" * 256])
def test_invalid_tag_names_are_rejected(view_name, bad_tag):
    with pytest.raises(ValueError, match="tag creation failure"):
        new_int64_metric(MetricID.CPU_USAGE_TIME, view_name, "desc", "s", Aggregation.SUM, [bad_tag])


def test_tags_outside_view_are_dropped(view_name):
    new_int64_metric(MetricID.DISK_OPS_COUNT, view_name + "/other", "desc", "1", Aggregation.SUM, ["a", "b"])
    metric = new_int64_metric(MetricID.DISK_OPS_COUNT, view_name, "desc", "1", Aggregation.SUM, ["a"])
    metric.record({"a": "1", "b": "2"}, 4)
    assert get_view_data(view_name) == [Int64MetricRepresentation(view_name, {"a": "1"}, 4)]


def test_reregistering_view_shares_data(view_name):
    first = new_int64_metric(MetricID.DISK_OPS_COUNT, view_name, "desc", "1", Aggregation.SUM, [])
    second = new_int64_metric(MetricID.DISK_OPS_COUNT, view_name, "desc", "1", Aggregation.SUM, [])
    first.record({}, 2)
    second.record({}, 3)
    assert get_view_data(view_name) == [Int64MetricRepresentation(view_name, {}, 2 + 3)]


def test_unknown_view_raises():
    with pytest.raises(KeyError):
        get_view_data(f"missing/{uuid.uuid4().hex}")