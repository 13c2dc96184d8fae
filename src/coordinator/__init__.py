"""Coordinator — разрыв циклической зависимости Ledger ↔ Strategy.

- StrategyBinding: late-bound handle с машиной состояний
- InitializationCoordinator: выполнение обеих фаз привязки
"""

from .coordinator import InitializationCoordinator
from .state_machine import InitState, InitTransitionResult, StrategyBinding

__all__ = [
    "InitState",
    "InitTransitionResult",
    "StrategyBinding",
    "InitializationCoordinator",
]
