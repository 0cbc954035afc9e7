# metrics.py
"""
Thread-safe helpers around the official prometheus_client for the sync engine.

Metrics are created on first use, so callers never pre-register names. Every helper
swallows its own failures after logging them: a broken metric must never break a
sync pass or a toggle.

Labels must stay low-cardinality. Use them for operation names, outcomes and modes;
never for resource keys (file paths) or writer identities.
"""
#
# Imports
import functools
import logging
import threading
import time
#
# Third-party Imports
from prometheus_client import Counter, Gauge, Histogram, start_http_server
#
# Local Imports
#
######################################################################################################################
#
# Functions:

_metrics_registry = {}
_registry_lock = threading.Lock()


def _get_or_create_metric(metric_type, name, documentation, label_keys=None):
    """
    Returns the registered metric or creates it. Double-checked lock so the hot path
    stays lock-free.
    """
    label_keys = tuple(sorted(label_keys or []))
    registry_key = (metric_type, name, label_keys)

    if registry_key in _metrics_registry:
        return _metrics_registry[registry_key]

    with _registry_lock:
        if registry_key in _metrics_registry:
            return _metrics_registry[registry_key]

        if metric_type == 'counter':
            metric = Counter(name, documentation or name, label_keys)
        elif metric_type == 'histogram':
            metric = Histogram(name, documentation or name, label_keys)
        elif metric_type == 'gauge':
            metric = Gauge(name, documentation or name, label_keys)
        else:
            raise ValueError(f"Unsupported metric type: {metric_type}")

        _metrics_registry[registry_key] = metric
        return metric


def _apply_labels(metric, labels):
    return metric.labels(**labels) if labels else metric


def log_counter(metric_name, value=1, labels=None, documentation=""):
    """Increments a counter metric."""
    try:
        label_keys = list(labels.keys()) if labels else []
        counter = _get_or_create_metric('counter', metric_name, documentation, label_keys)
        _apply_labels(counter, labels).inc(value)
    except Exception as e:
        logging.error(f"Failed to log counter {metric_name}: {e}")


def log_histogram(metric_name, value, labels=None, documentation=""):
    """Observes a value for a histogram metric."""
    try:
        label_keys = list(labels.keys()) if labels else []
        histogram = _get_or_create_metric('histogram', metric_name, documentation, label_keys)
        _apply_labels(histogram, labels).observe(value)
    except Exception as e:
        logging.error(f"Failed to log histogram {metric_name}: {e}")


def log_gauge(metric_name, value, labels=None, documentation=""):
    """Sets the value of a gauge metric."""
    try:
        label_keys = list(labels.keys()) if labels else []
        gauge = _get_or_create_metric('gauge', metric_name, documentation, label_keys)
        _apply_labels(gauge, labels).set(value)
    except Exception as e:
        logging.error(f"Failed to log gauge {metric_name}: {e}")


def timeit(metric_name=None, documentation="Execution time of a function."):
    """
    Decorator that records a duration histogram and a call counter, labelled with
    'success' or 'error'.
    """

    def decorator(func):
        base_name = metric_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            status = "error"
            try:
                result = func(*args, **kwargs)
                status = "success"
                return result
            finally:
                elapsed = time.perf_counter() - start
                common_labels = {"function": func.__name__, "status": status}
                log_histogram(
                    metric_name=f"{base_name}_duration_seconds",
                    value=elapsed,
                    labels=common_labels,
                    documentation=documentation
                )
                log_counter(
                    metric_name=f"{base_name}_calls_total",
                    labels=common_labels,
                    documentation=f"Total calls to {func.__name__}"
                )

        return wrapper

    return decorator


def init_metrics_server(port=8000):
    """Starts the Prometheus HTTP exporter in a background thread."""
    start_http_server(port)
    logging.info(f"Prometheus metrics server started on port {port}")

#
# End of metrics.py
######################################################################################################################
