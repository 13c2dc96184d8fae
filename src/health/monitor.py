"""Health Monitor — применение health factor от oracle.

Oracle доверенный: единственная проверка значения — неотрицательность.
История не хранится, порядок прихода не проверяется: каждое обновление
last-write-wins. Это известное ограничение — нет timestamp, нет защиты от
replay и переупорядочивания.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.core.domain.amounts import REBALANCE_THRESHOLD, to_health_factor
from src.core.errors import Unauthorized
from src.ledger.position_ledger import PositionLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthUpdateResult:
    """Результат применения health factor."""

    user: str
    previous_health_factor: Optional[Decimal]
    health_factor: Decimal
    needs_rebalance: bool
    flag_changed: bool


class HealthMonitor:
    """Применяет обновления oracle к позициям ledger."""

    def __init__(self, ledger: PositionLedger, oracle_identity: str):
        if not oracle_identity:
            raise ValueError("oracle_identity must be non-empty")
        self.ledger = ledger
        self.oracle_identity = oracle_identity

    @property
    def threshold(self) -> Decimal:
        return REBALANCE_THRESHOLD

    def update_health_factor(self, caller: str, user: str, value) -> HealthUpdateResult:
        """Установка health factor позиции.

        Args:
            caller: идентичность вызывающего (должна совпадать с oracle)
            user: владелец позиции
            value: health factor (Decimal / int / str)

        Raises:
            Unauthorized: caller не oracle; позиция не меняется
            InvalidHealthFactor: отрицательное значение
            UnknownPosition: у пользователя нет позиции
        """
        if caller != self.oracle_identity:
            raise Unauthorized(f"Not authorized: {caller} is not the configured oracle")

        hf = to_health_factor(value)
        with self.ledger.transaction():
            before = self.ledger.position_record(user)
            after = self.ledger.apply_health_factor(user, hf)

        previous_hf = before.last_health_factor if before is not None else None
        previous_flag = before.needs_rebalance if before is not None else False
        result = HealthUpdateResult(
            user=user,
            previous_health_factor=previous_hf,
            health_factor=hf,
            needs_rebalance=after.needs_rebalance,
            flag_changed=previous_flag != after.needs_rebalance,
        )
        logger.info(
            f"Health factor: user={user} hf={hf} needs_rebalance={after.needs_rebalance}"
        )
        return result
