"""LendingPoolStrategy — эталонная стратегия поверх lending pool.

Модель backend:
- депозит хранится как scaled balance, доход начисляется ростом liquidity index
  (accrue); текущая стоимость = scaled × index
- часть пула может быть выдана заёмщикам (borrowed); вывести можно только
  свободную ликвидность, поэтому withdraw может вернуть меньше запрошенного

Внутренности конкретного lending протокола здесь не моделируются: адреса
pool / yield token / data provider хранятся только как идентификаторы.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from src.core.domain.amounts import ZERO, to_amount
from src.core.domain.routes import RouteConfig
from src.core.math.yield_accrual import (
    INDEX_ONE,
    accrue_index,
    amount_from_scaled,
    apy_from_rate,
    safe_yield_rate,
    scaled_from_amount,
)
from src.strategy.base import StrategyAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LendingPoolConfig:
    """Конфигурация lending backend."""

    asset: str
    yield_token: str
    pool: str
    data_source: str
    supply_rate: Decimal = Decimal("0.04")  # непрерывная годовая ставка


class LendingPoolStrategy(StrategyAdapter):
    """Стратегия с начислением через liquidity index и ограниченной ликвидностью."""

    def __init__(self, strategy_id: str, config: LendingPoolConfig):
        super().__init__(strategy_id)
        self.config = config
        self.supply_rate = safe_yield_rate(config.supply_rate)
        self.liquidity_index = INDEX_ONE
        self.scaled_balance = ZERO
        self.borrowed = ZERO

    @classmethod
    def from_route(
        cls,
        route: RouteConfig,
        strategy_id: str,
        supply_rate: Decimal = Decimal("0.04"),
    ) -> "LendingPoolStrategy":
        """Стратегия для домена из записи таблицы маршрутов."""
        config = LendingPoolConfig(
            asset=route.asset,
            yield_token=route.yield_token,
            pool=route.backend_pool,
            data_source=route.backend_data_source,
            supply_rate=supply_rate,
        )
        return cls(strategy_id, config)

    # -------------------------------------------------------------------------
    # Состояние пула
    # -------------------------------------------------------------------------

    def accrue(self, elapsed_seconds: int) -> Decimal:
        """Начисление дохода за период. Возвращает новый liquidity index."""
        self.liquidity_index = accrue_index(
            self.liquidity_index, self.supply_rate, elapsed_seconds
        )
        return self.liquidity_index

    def set_borrowed(self, amount: Decimal) -> None:
        """Сколько из стоимости пула выдано заёмщикам (недоступно к выводу)."""
        amount = to_amount(amount)
        if amount < 0:
            raise ValueError(f"borrowed must be non-negative, got {amount}")
        self.borrowed = amount

    def available_liquidity(self) -> Decimal:
        return max(ZERO, self.total_managed_value() - self.borrowed)

    # -------------------------------------------------------------------------
    # StrategyAdapter
    # -------------------------------------------------------------------------

    def _deposit(self, amount: Decimal) -> Decimal:
        scaled = scaled_from_amount(amount, self.liquidity_index)
        self.scaled_balance += scaled
        return amount_from_scaled(scaled, self.liquidity_index)

    def _withdraw(self, amount: Decimal) -> Decimal:
        actual = min(amount, self.available_liquidity())
        if actual <= 0:
            logger.warning(f"Strategy {self.strategy_id}: no liquidity available")
            return ZERO
        self.scaled_balance = max(
            ZERO, self.scaled_balance - scaled_from_amount(actual, self.liquidity_index)
        )
        return actual

    def current_yield_rate(self) -> Decimal:
        return apy_from_rate(self.supply_rate)

    def total_managed_value(self) -> Decimal:
        return amount_from_scaled(self.scaled_balance, self.liquidity_index)
