"""Telemetry - logger factory and metrics facade

Log format: [module] [Component] msg
Metric examples: session.spawned, session.swept, protocol.resize, timer.errors
"""

import logging
import threading

from . import config

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return the module logger (usually called with ``__name__``)."""
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the ``termtile`` logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger("termtile")
    root.setLevel(level.upper())
    if not any(getattr(h, "_termtile", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._termtile = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def format_session_log(component: str, session_id: str, msg: str) -> str:
    """Format a log line carrying a shortened session id.

    Returns:
        ``[component:session_id[:8]] msg``
    """
    short = session_id[:8] if session_id else "unknown"
    return f"[{component}:{short}] {msg}"


class Metrics:
    """Process-wide counters and gauges keyed by name plus labels.

    Labels are folded into the key, e.g. ``gateway.rejected{reason=unauthorized}``.
    Thread-safe like SessionRegistry, which records into it. Recording is
    a no-op while ``config.METRICS_ENABLED`` is false; reads still work.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._gauges: dict[str, float] = {}

    @property
    def enabled(self) -> bool:
        return config.METRICS_ENABLED

    def inc(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        if not self.enabled:
            return
        key = _metric_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._gauges[_metric_key(name, labels)] = value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(_metric_key(name, labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._gauges.get(_metric_key(name, labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()


def _metric_key(name: str, labels: dict[str, str] | None) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"


metrics = Metrics()
