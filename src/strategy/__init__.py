"""Strategy — адаптеры yield backend.

- StrategyAdapter: интерфейс (deposit / withdraw / yield / managed value)
- MockStrategy: тестовый backend с фиксированной доходностью
- LendingPoolStrategy: эталонный lending backend с liquidity index
"""

from .base import StrategyAdapter
from .lending import LendingPoolConfig, LendingPoolStrategy
from .mock import MOCK_YIELD_RATE, MockStrategy

__all__ = [
    "StrategyAdapter",
    "MockStrategy",
    "MOCK_YIELD_RATE",
    "LendingPoolStrategy",
    "LendingPoolConfig",
]
