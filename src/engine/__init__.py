"""Engine — фасад и сборка движка одного домена."""

from .builder import EngineBuilder
from .engine import YieldEngine

__all__ = [
    "EngineBuilder",
    "YieldEngine",
]
