import pytest

from npdkit.metrics import Float64MetricRepresentation
from npdkit.prometheus import PrometheusParseError, get_float64_metric, parse_prometheus_metrics

SAMPLE_METRICS = """\
# HELP disk_avg_queue_len The average queue length on the disk
# TYPE disk_avg_queue_len gauge
disk_avg_queue_len{device="sda1"} 0.01
disk_avg_queue_len{device="sda8"} 0
# HELP host_uptime The uptime of the operating system
# TYPE host_uptime gauge
host_uptime{kernel_version="4.14.127+",os_version="cos 73-11647.217.0"} 1062
# HELP problem_counter Number of times a specific type of problem have occurred.
# TYPE problem_counter counter
problem_counter{reason="DockerHung"} 0
problem_counter{reason="OOMKilling"} 1
"""

RELAXED_FOUND = [
    ("host_uptime", {}),
    ("host_uptime", {"kernel_version": "4.14.127+"}),
    ("disk_avg_queue_len", {"device": "sda1"}),
    ("disk_avg_queue_len", {"device": "sda8"}),
]
RELAXED_MISSING = [
    ("host_uptime", {"non-existant-version": "0.0.1"}),
    ("host_uptime", {"kernel_version": "mismatched-version"}),
    ("host_downtime", {}),
]
STRICT_FOUND = [
    ("host_uptime", {"kernel_version": "4.14.127+", "os_version": "cos 73-11647.217.0"}),
    ("problem_counter", {"reason": "DockerHung"}),
    ("problem_counter", {"reason": "OOMKilling"}),
]
STRICT_MISSING = [
    ("host_uptime", {"kernel_version": "4.14.127+"}),
    ("host_uptime", {}),
    ("host_uptime", {"non-existent-version": "0.0.1"}),
    ("host_uptime", {"kernel_version": "mismatched-version"}),
    ("host_downtime", {}),
]


@pytest.fixture(scope="module")
def sample():
    return parse_prometheus_metrics(SAMPLE_METRICS)


@pytest.mark.parametrize("name, labels", RELAXED_FOUND)
def test_relaxed_matching_finds(sample, name, labels):
    metric = get_float64_metric(sample, name, labels, False)
    assert metric.name == name
    assert labels.items() <= metric.labels.items()


@pytest.mark.parametrize("name, labels", RELAXED_MISSING)
def test_relaxed_matching_misses(sample, name, labels):
    with pytest.raises(LookupError):
        get_float64_metric(sample, name, labels, False)


@pytest.mark.parametrize("name, labels", STRICT_FOUND)
def test_strict_matching_finds(sample, name, labels):
    metric = get_float64_metric(sample, name, labels, True)
    assert metric.name == name
    assert metric.labels == labels


@pytest.mark.parametrize("name, labels", STRICT_MISSING)
def test_strict_matching_misses(sample, name, labels):
    with pytest.raises(LookupError):
        get_float64_metric(sample, name, labels, True)


def test_values_are_parsed(sample):
    assert get_float64_metric(sample, "host_uptime", {}, False).value == 1062.0
    assert get_float64_metric(sample, "disk_avg_queue_len", {"device": "sda1"}, True).value == 0.01
    assert len(sample) == 5


def test_carriage_returns_are_ignored():
    text = "# TYPE up gauge\r\nup{job=\"node\"} 1\r\n"
    assert parse_prometheus_metrics(text) == [Float64MetricRepresentation("up", {"job": "node"}, 1.0)]


def test_label_escapes_and_timestamp():
    text = '# TYPE m gauge\nm{path="x\\\\y\\"z\\n"} 2 1700000000\n'
    assert parse_prometheus_metrics(text) == [Float64MetricRepresentation("m", {"path": 'x\\y"z\n'}, 2.0)]


def test_plain_comments_are_ignored():
    text = "# just a remark\n# TYPE m counter\nm 3\n"
    assert parse_prometheus_metrics(text) == [Float64MetricRepresentation("m", {}, 3.0)]


def test_untyped_metric_is_rejected():
    with pytest.raises(PrometheusParseError, match="unexpected MetricType UNTYPED for metric m"):
        parse_prometheus_metrics("m 1\n")


def test_summary_metric_is_rejected():
    text = '# TYPE rpc summary\nrpc{quantile="0.5"} 1\nrpc_sum 4\nrpc_count 2\n'
    with pytest.raises(PrometheusParseError, match="SUMMARY"):
        parse_prometheus_metrics(text)


@pytest.mark.parametrize(
    "text",
    [
        "# TYPE m gauge\nm abc\n",
        "# TYPE m gauge\nm\n",
        '# TYPE m gauge\nm{a="1",a="2"} 1\n',
        "# TYPE m gauge\nm{a=1} 1\n",
        '# TYPE m gauge\nm{a="1" 1\n',
        '# TYPE m gauge\nm{a="\\t"} 1\n',
        "# TYPE m gauge\nm 1 2 3\n",
        "# TYPE m gauge\nm 1 notatime\n",
        "# TYPE m bogus\nm 1\n",
        "# TYPE m gauge\n# TYPE m counter\nm 1\n",
        "# TYPE m gauge\nm 1\n# TYPE m gauge\n",
        "9bad 1\n",
    ],
)
def test_malformed_text_is_rejected(text):
    with pytest.raises(PrometheusParseError):
        parse_prometheus_metrics(text)


def test_empty_text_has_no_metrics():
    assert parse_prometheus_metrics("") == []


def test_get_float64_metric_returns_first_match():
    metrics = [
        Float64MetricRepresentation("m", {"a": "1", "b": "2"}, 1.0),
        Float64MetricRepresentation("m", {"a": "1"}, 2.0),
    ]
    assert get_float64_metric(metrics, "m", {"a": "1"}, False).value == 1.0
    assert get_float64_metric(metrics, "m", {"a": "1"}, True).value == 2.0