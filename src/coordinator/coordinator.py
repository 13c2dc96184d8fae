"""Initialization Coordinator — выполнение двухфазной привязки для ledger."""

from typing import List

from src.coordinator.state_machine import InitTransitionResult


class InitializationCoordinator:
    """Проводит ledger через UNINITIALIZED → BOUND → ACTIVE.

    Ledger к этому моменту уже создан с непривязанной стратегией; координатор
    не конструирует ни ledger, ни стратегию.
    """

    def initialize(self, ledger) -> List[InitTransitionResult]:
        """
        Args:
            ledger: PositionLedger в состоянии UNINITIALIZED

        Returns:
            Переходы в порядке выполнения (BOUND, ACTIVE)

        Raises:
            AlreadyInitialized: ledger или стратегия уже инициализированы
        """
        bound = ledger.bind_strategy()
        active = ledger.complete_init()
        return [bound, active]
