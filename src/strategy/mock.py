"""MockStrategy — тестовая стратегия с фиксированной доходностью.

Учитывает только total_deposited; per-user учёт — через credit_position.
liquidity_cap ограничивает сумму, которую backend способен вернуть
(моделирование неликвидности).
"""

from decimal import Decimal
from typing import Dict, Optional

from src.core.domain.amounts import ZERO, to_amount
from src.core.errors import StrategyError
from src.strategy.base import StrategyAdapter


MOCK_YIELD_RATE = Decimal("0.05")


class MockStrategy(StrategyAdapter):
    """Стратегия без внешнего backend."""

    def __init__(
        self,
        strategy_id: str = "mock-strategy",
        yield_rate: Decimal = MOCK_YIELD_RATE,
        liquidity_cap: Optional[Decimal] = None,
    ):
        super().__init__(strategy_id)
        self.yield_rate = Decimal(yield_rate)
        self.liquidity_cap = None if liquidity_cap is None else to_amount(liquidity_cap)
        self.total_deposited = ZERO
        self.balances: Dict[str, Decimal] = {}

    def _deposit(self, amount: Decimal) -> Decimal:
        self.total_deposited += amount
        return amount

    def _withdraw(self, amount: Decimal) -> Decimal:
        if self.total_deposited < amount:
            raise StrategyError(
                f"Insufficient balance: requested {amount}, deposited {self.total_deposited}"
            )
        actual = amount
        if self.liquidity_cap is not None:
            actual = min(amount, self.liquidity_cap)
            self.liquidity_cap -= actual
        self.total_deposited -= actual
        return actual

    def credit_position(self, user: str, amount: Decimal) -> None:
        self.balances[user] = self.balances.get(user, ZERO) + to_amount(amount)

    def user_balance(self, user: str) -> Decimal:
        return self.balances.get(user, ZERO)

    def current_yield_rate(self) -> Decimal:
        return self.yield_rate

    def total_managed_value(self) -> Decimal:
        return self.total_deposited
