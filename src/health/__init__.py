"""Health — применение health factor от oracle к позициям."""

from .monitor import HealthMonitor, HealthUpdateResult

__all__ = [
    "HealthMonitor",
    "HealthUpdateResult",
]
