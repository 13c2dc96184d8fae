"""Strategy Adapter — интерфейс yield backend.

Стратегия разделяется между ledger и внешним backend, но не знает о позициях:
учитываются только агрегированные депозиты и выводы.

Контракт withdraw:
- никогда не возвращает больше запрошенного
- может вернуть меньше (неликвидность backend) — вызывающий обязан сверить

Двухфазная привязка:
- стратегия создаётся без потребителя (Uninitialized)
- bind_consumer(ledger_id) вызывается ровно один раз (Bound)
- deposit/withdraw до привязки → NotInitialized
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from src.core.domain.amounts import to_amount, validate_positive_amount
from src.core.errors import AlreadyInitialized, NotInitialized, StrategyError

logger = logging.getLogger(__name__)


class StrategyAdapter(ABC):
    """Базовый класс всех стратегий (template method над _deposit/_withdraw)."""

    def __init__(self, strategy_id: str):
        if not strategy_id:
            raise ValueError("strategy_id must be non-empty")
        self.strategy_id = strategy_id
        self._consumer: Optional[str] = None

    # -------------------------------------------------------------------------
    # Привязка потребителя
    # -------------------------------------------------------------------------

    @property
    def consumer(self) -> Optional[str]:
        """Идентичность ledger, которому разрешено вызывать стратегию."""
        return self._consumer

    @property
    def is_bound(self) -> bool:
        return self._consumer is not None

    def bind_consumer(self, ledger_id: str) -> None:
        """Одноразовая привязка ledger к стратегии.

        Raises:
            AlreadyInitialized: если потребитель уже привязан
        """
        if self._consumer is not None:
            raise AlreadyInitialized(
                f"Strategy {self.strategy_id} already bound to {self._consumer}"
            )
        if not ledger_id:
            raise ValueError("ledger_id must be non-empty")
        self._consumer = ledger_id
        logger.info(f"Strategy {self.strategy_id} bound to consumer {ledger_id}")

    def _require_bound(self) -> None:
        if self._consumer is None:
            raise NotInitialized(f"Strategy {self.strategy_id} has no bound consumer")

    # -------------------------------------------------------------------------
    # Операции
    # -------------------------------------------------------------------------

    def deposit(self, amount: Decimal) -> Decimal:
        """Размещение суммы в backend. Возвращает зачисленную сумму."""
        self._require_bound()
        amount = validate_positive_amount(amount)
        credited = to_amount(self._deposit(amount))
        logger.debug(f"Strategy {self.strategy_id} deposit {amount}, credited {credited}")
        return credited

    def withdraw(self, amount: Decimal) -> Decimal:
        """Вывод суммы из backend. Возвращает фактически выведенное.

        Raises:
            StrategyError: backend нарушил контракт (вернул больше запрошенного
                или отрицательную сумму) либо не может выполнить вывод
        """
        self._require_bound()
        amount = validate_positive_amount(amount)
        actual = to_amount(self._withdraw(amount))

        if actual > amount:
            raise StrategyError(
                f"Strategy {self.strategy_id} returned {actual} > requested {amount}"
            )
        if actual < 0:
            raise StrategyError(f"Strategy {self.strategy_id} returned negative amount {actual}")
        if actual < amount:
            logger.warning(
                f"Strategy {self.strategy_id} partial withdraw: requested {amount}, returned {actual}"
            )
        return actual

    def user_balance(self, user: str) -> Decimal:
        """Баланс пользователя в backend (опционально, зависит от backend)."""
        raise NotImplementedError(
            f"{type(self).__name__} does not provide per-user sub-accounting"
        )

    @abstractmethod
    def current_yield_rate(self) -> Decimal:
        """Текущая доходность (годовая, доля)."""

    @abstractmethod
    def total_managed_value(self) -> Decimal:
        """Совокупная стоимость под управлением стратегии."""

    @abstractmethod
    def _deposit(self, amount: Decimal) -> Decimal:
        ...

    @abstractmethod
    def _withdraw(self, amount: Decimal) -> Decimal:
        ...
