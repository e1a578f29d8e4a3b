"""Node health helpers: start times, OS version, process groups, metrics, Prometheus parsing, kernel info and a bandwidth check."""

__version__ = "0.1.0"