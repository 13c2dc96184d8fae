"""Init State Machine — двухфазная привязка Ledger ↔ Strategy.

Ledger и стратегия ссылаются друг на друга: ledger вызывает стратегию,
стратегия принимает вызовы только от своего ledger. Цикл в конструкторах
разрывается late-bound handle:

1. Ledger создаётся с ещё не привязанной стратегией (UNINITIALIZED)
2. Стратегии один раз сообщается идентичность ledger: bind_consumer (BOUND)
3. Ledger один раз подтверждает привязку: complete_init (ACTIVE)

Переходы только вперёд: UNINITIALIZED → BOUND → ACTIVE.
Повторный вызов любой фазы → AlreadyInitialized.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List

from src.core.errors import AlreadyInitialized, BindingMismatch, NotInitialized
from src.strategy.base import StrategyAdapter

logger = logging.getLogger(__name__)


class InitState(str, Enum):
    """Состояние привязки стратегии."""

    UNINITIALIZED = "UNINITIALIZED"
    BOUND = "BOUND"
    ACTIVE = "ACTIVE"


_ALLOWED_TRANSITIONS: Dict[InitState, FrozenSet[InitState]] = {
    InitState.UNINITIALIZED: frozenset({InitState.BOUND}),
    InitState.BOUND: frozenset({InitState.ACTIVE}),
    InitState.ACTIVE: frozenset(),
}


@dataclass(frozen=True)
class InitTransitionResult:
    """Результат перехода состояния привязки."""

    new_state: InitState
    previous_state: InitState
    transition_reason: str
    details: str


class StrategyBinding:
    """Late-bound handle стратегии внутри ledger.

    Одна привязка на ledger; asset хранится рядом, т.к. стратегия и ledger
    работают с одним и тем же активом.
    """

    def __init__(self, strategy: StrategyAdapter, asset):
        self.strategy = strategy
        self.asset = asset
        self._state = InitState.UNINITIALIZED
        self._history: List[InitTransitionResult] = []

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state == InitState.ACTIVE

    @property
    def history(self) -> List[InitTransitionResult]:
        return list(self._history)

    def bind(self, ledger_id: str) -> InitTransitionResult:
        """Фаза 1: сообщить стратегии идентичность ledger.

        Raises:
            AlreadyInitialized: привязка уже выполнена (здесь или напрямую на стратегии)
        """
        if self._state != InitState.UNINITIALIZED:
            raise AlreadyInitialized(f"Binding already in state {self._state.value}")
        self.strategy.bind_consumer(ledger_id)
        return self._transition(
            InitState.BOUND,
            reason="consumer_bound",
            details=f"Strategy {self.strategy.strategy_id} bound to {ledger_id}",
        )

    def complete(self, ledger_id: str) -> InitTransitionResult:
        """Фаза 2: ledger подтверждает привязку.

        Стратегия могла быть привязана напрямую (bind_consumer без участия
        ledger) — тогда переход BOUND фиксируется здесь же.

        Raises:
            AlreadyInitialized: complete уже вызывался
            NotInitialized: стратегия ещё не знает своего потребителя
            BindingMismatch: стратегия привязана к другому ledger
        """
        if self._state == InitState.ACTIVE:
            raise AlreadyInitialized("Ledger initialization already completed")

        consumer = self.strategy.consumer
        if consumer is None:
            raise NotInitialized(
                f"Strategy {self.strategy.strategy_id} has no consumer; bind it first"
            )
        if consumer != ledger_id:
            raise BindingMismatch(
                f"Strategy {self.strategy.strategy_id} bound to {consumer}, not {ledger_id}"
            )

        if self._state == InitState.UNINITIALIZED:
            self._transition(
                InitState.BOUND,
                reason="consumer_bound_externally",
                details=f"Observed strategy consumer {consumer}",
            )
        return self._transition(
            InitState.ACTIVE,
            reason="init_completed",
            details=f"Ledger {ledger_id} active with strategy {self.strategy.strategy_id}",
        )

    def _transition(self, to_state: InitState, reason: str, details: str) -> InitTransitionResult:
        if to_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise AlreadyInitialized(
                f"Transition {self._state.value} → {to_state.value} not allowed"
            )
        result = InitTransitionResult(
            new_state=to_state,
            previous_state=self._state,
            transition_reason=reason,
            details=details,
        )
        self._state = to_state
        self._history.append(result)
        logger.info(f"Init transition {result.previous_state.value} → {to_state.value}: {details}")
        return result
