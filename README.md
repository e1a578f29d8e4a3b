# npdkit

Building blocks for watching the health of a machine:

- `npdkit.helpers` – when log watchers should start reading, duration
  parsing, uptime, and the operating-system version;
- `npdkit.execs` – helper processes started in their own process group and
  killed together with everything they spawned;
- `npdkit.tomb` – stopping a background worker and waiting until it is done;
- `npdkit.metrics` – gauge and counter metrics aggregated in process;
- `npdkit.fakes` – an in-memory integer metric for tests;
- `npdkit.prometheus` – parsing Prometheus text output and finding metrics by
  name and labels;
- `npdkit.sysinfo` – kernel command-line arguments and loaded kernel modules;
- `npdkit.httpjson` – JSON and error responses for `http.server` handlers;
- `npdkit.nethealth` – a download bandwidth and integrity check
  (`npd-nethealth`);
- `npdkit.version` – the version string.

Requires Python 3.10 or later and `psutil`.

## Start times for log watchers

```python
from datetime import datetime, timedelta
from npdkit.helpers import get_start_time, parse_duration

now = datetime.now()
start = get_start_time(now, timedelta(seconds=10), "6s", "7s")
# boot time pushed later by the delay, but never before now - lookback:
# here three seconds before `now`

parse_duration("1m30s")   # timedelta(seconds=90)
parse_duration("-1.5h")   # timedelta(hours=-1.5)
```

`parse_duration` accepts the units `ns`, `us` (or `µs`), `ms`, `s`, `m` and
`h`; a bare `"0"` needs no unit. In `get_start_time` an empty look-back or
delay string means "not set". A malformed duration raises `ValueError`.

`get_uptime_duration()` returns the time since the last boot in whole seconds.

## Operating system version

```python
from npdkit.helpers import get_os_version, read_os_version, parse_os_release

get_os_version()                    # e.g. "ubuntu 16.04.6 LTS (Xenial Xerus)"
read_os_version("/etc/os-release")  # the same, from an explicit file
parse_os_release('ID=cos\nVERSION="77"\n')  # {"ID": "cos", "VERSION": "77"}
```

On Linux the `ID` of the os-release file decides the format: `cos` gives
`"cos <VERSION>-<BUILD_ID>"`; `debian`, `ubuntu`, `centos`, `rhel`, `ol`,
`amzn` and `sles` give `"<ID> <VERSION>"`. Any other ID raises `ValueError`.
On Windows the version comes from the registry, e.g.
`"windows 10.0.17763.1697 (Windows Server 2016 Datacenter)"`.

## Running and killing helper processes

```python
from npdkit.execs import make_command

cmd = make_command("/bin/sh", "-c", "sleep 60")
cmd.start()
cmd.kill()      # kills the process group
cmd.wait()      # returns the exit status
```

On POSIX the process runs in a new session and `kill()` sends `SIGKILL` to its
process group. On Windows, `.cmd`/`.bat` files are run through `cmd.exe /C`,
`.ps1` files through `powershell()`, and `kill()` uses `TASKKILL /T /F`.
Standard input and output of the child are discarded. Calling `kill()` or
`wait()` before `start()`, or `start()` twice, raises `RuntimeError`.

## Stopping background workers

```python
import threading
from npdkit.tomb import Tomb

tomb = Tomb()

def worker():
    try:
        tomb.stopping().wait()
    finally:
        tomb.done()

threading.Thread(target=worker).start()
tomb.stop()     # returns once the worker has called done()
```

`stopping()` returns a `threading.Event`. Calling `stop()` or `done()` a
second time raises `RuntimeError`.

## Metrics

```python
from npdkit.metrics import Aggregation, MetricID, get_view_data, new_int64_metric

counter = new_int64_metric(
    MetricID.PROBLEM_COUNTER, "problem_counter", "Number of problems", "1",
    Aggregation.SUM, ["reason"],
)
counter.record({"reason": "OOMKilling"}, 1)
counter.record({"reason": "OOMKilling"}, 2)
get_view_data("problem_counter")
# [Int64MetricRepresentation(name='problem_counter', labels={'reason': 'OOMKilling'}, value=3)]
```

`Aggregation.SUM` adds measurements up; `Aggregation.LAST_VALUE` keeps the
latest. `new_float64_metric` works the same way for floats. An empty view name
returns `None`. Each view name is recorded in `METRIC_MAP`, which answers
`view_name_to_metric_id(name)`. Tag names must be registered when a metric is
created, and tag names and values must be printable ASCII of 1 to 255
characters; otherwise `ValueError` is raised. `get_view_data` raises
`KeyError` for an unknown view.

### A fake for tests

```python
from npdkit.fakes import FakeInt64Metric
from npdkit.metrics import Aggregation

fake = FakeInt64Metric("foo", Aggregation.SUM, ["A"])
fake.record({"A": "1"}, 1)
fake.record({"A": "1"}, 2)
fake.list_metrics()  # [Int64MetricRepresentation(name='foo', labels={'A': '1'}, value=3)]
```

Recording a tag that was not listed raises `ValueError`, as does an empty name.

## Prometheus output

```python
from npdkit.prometheus import get_float64_metric, parse_prometheus_metrics

metrics = parse_prometheus_metrics(text)
uptime = get_float64_metric(metrics, "host_uptime", {"kernel_version": "4.14.127+"}, False)
print(uptime.value)
```

With strict matching the labels must be exactly those given; otherwise the
metric's labels need only include them. `get_float64_metric` raises
`LookupError` when nothing matches. Only counter and gauge families are
accepted; other types and malformed text raise `PrometheusParseError` (a
`ValueError`).

## Kernel command line and modules

```python
from npdkit.sysinfo import cmdline_args, contains_module, modules

for arg in cmdline_args("/proc/cmdline"):
    print(arg)          # {"key":"console","value":"ttyS0"}

mods = modules("/proc/modules")
print(mods[0])          # {"moduleName":"drm","instances":0,"proprietary":false,...}
contains_module("drm", mods)
```

Quoted values keep their spaces, so `key3="value2 value3"` is one argument
with the quotes stripped; words that start with a double quote are skipped.
An empty command-line file raises `ValueError`. Module taint flags come from
the seventh field: `P` proprietary, `O` out of tree, `E` unsigned.

## JSON responses

```python
from http.server import BaseHTTPRequestHandler
from npdkit.httpjson import write_json

class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        write_json(self, {"status": "ok"})
```

`write_json` sends compact JSON with status 200; if the object cannot be
encoded it sends a 500 via `write_error`, whose body is the error message.

## Network health check

```
npd-nethealth [--url URL] [--hashurl URL] [--length BYTES] [--timeout SECONDS] [--minimum MIB_PER_SEC]
```

Checks the object's reported length with a HEAD request, downloads it,
measures the bandwidth against the minimum (default 10 MiB/s), fetches the
hash file (`<label> <hex digest>`) and compares it with the SHA-512 of the
data. Defaults: a 64 MiB test object, a 30 second timeout. It exits with
status 1 on timeout, a length mismatch, too little bandwidth or a hash
mismatch, and 0 otherwise. `parse_hash_file` and `bandwidth_kib_per_sec` are
available on their own.

## Version

```python
from npdkit.version import get_version, print_version

get_version()    # "UNKNOWN"
print_version()  # writes it to standard output
```

## What it does not do

Metrics are only aggregated inside the process: nothing exports them to
Prometheus or any other backend, and there is no metrics HTTP endpoint. The
package has no log watchers, problem detectors or long-running daemon of its
own; it provides the pieces such a tool is built from. The only command is
`npd-nethealth`.