"""Position Ledger — авторитетное состояние позиций одного домена.

Ledger — единственный писатель позиций (single-writer per domain). Каждая
внешняя операция выполняется как атомарная транзакция:
- все операции сериализуются одним RLock (аналог total ordering хоста)
- при исключении позиции, реестр пользователей и таблица nonce
  восстанавливаются из снапшота, а внешние эффекты (перевод актива,
  депозит/вывод стратегии) откатываются зарегистрированными компенсациями

Реестр известных пользователей — append-only, в порядке первого депозита;
используется только для сканирования в Automation Trigger.
"""

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from src.coordinator.state_machine import InitState, InitTransitionResult, StrategyBinding
from src.core.domain.amounts import ZERO, to_amount, validate_positive_amount
from src.core.domain.messages import RebalanceMessage
from src.core.domain.position import Position, PositionSnapshot
from src.core.domain.routes import Network
from src.core.errors import InsufficientCollateral, NotInitialized, UnknownPosition
from src.ledger.asset import AssetLedger
from src.ledger.inbox import NonceRegistry
from src.ledger.price_feed import PriceFeed
from src.strategy.base import StrategyAdapter

logger = logging.getLogger(__name__)


class Transaction:
    """Компенсации внешних эффектов текущей транзакции."""

    def __init__(self):
        self._compensations: List[Callable[[], None]] = []

    def on_rollback(self, compensation: Callable[[], None]) -> None:
        self._compensations.append(compensation)

    def rollback(self) -> None:
        # В обратном порядке регистрации; исходное исключение пробрасывает transaction()
        for compensation in reversed(self._compensations):
            try:
                compensation()
            except Exception:
                logger.exception("Compensation failed during rollback")
        self._compensations.clear()


class PositionLedger:
    """Ledger позиций одного домена."""

    def __init__(
        self,
        ledger_id: str,
        local_domain: Network,
        strategy: StrategyAdapter,
        asset: AssetLedger,
        price_feed: Optional[PriceFeed] = None,
    ):
        if not ledger_id:
            raise ValueError("ledger_id must be non-empty")
        self.ledger_id = ledger_id
        self.local_domain = local_domain
        self.binding = StrategyBinding(strategy=strategy, asset=asset)
        self.price_feed = price_feed

        self._positions: Dict[str, Position] = {}
        self._known_users: List[str] = []
        self._known_set: Set[str] = set()
        self._inbox = NonceRegistry()

        self._lock = threading.RLock()
        self._active_txn: Optional[Transaction] = None

    @property
    def strategy(self) -> StrategyAdapter:
        return self.binding.strategy

    @property
    def asset(self) -> AssetLedger:
        return self.binding.asset

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def bind_strategy(self) -> InitTransitionResult:
        """Фаза 1: стратегия узнаёт идентичность этого ledger."""
        with self._lock:
            return self.binding.bind(self.ledger_id)

    def complete_init(self) -> InitTransitionResult:
        """Фаза 2: одноразовое подтверждение привязки."""
        with self._lock:
            return self.binding.complete(self.ledger_id)

    @property
    def init_state(self) -> InitState:
        return self.binding.state

    def _require_active(self) -> None:
        if not self.binding.initialized:
            raise NotInitialized(
                f"Ledger {self.ledger_id} not active (state={self.binding.state.value})"
            )

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Атомарная транзакция над состоянием ledger.

        Вложенные транзакции присоединяются к внешней: откат выполняет
        только самая внешняя.
        """
        with self._lock:
            if self._active_txn is not None:
                yield self._active_txn
                return

            txn = Transaction()
            positions = dict(self._positions)
            known_users = len(self._known_users)
            inbox = self._inbox.copy()
            self._active_txn = txn
            try:
                yield txn
            except BaseException:
                txn.rollback()
                self._positions = positions
                for user in self._known_users[known_users:]:
                    self._known_set.discard(user)
                del self._known_users[known_users:]
                self._inbox = inbox
                raise
            finally:
                self._active_txn = None

    # =========================================================================
    # DEPOSIT / WITHDRAW
    # =========================================================================

    def deposit(self, user: str, amount: Decimal) -> PositionSnapshot:
        """Депозит актива пользователя.

        Raises:
            InvalidAmount: amount <= 0
            NotInitialized: ledger ещё не ACTIVE
            TransferRejected: актив не удалось списать (пробрасывается как есть)
        """
        amount = validate_positive_amount(amount)

        with self.transaction() as txn:
            self._require_active()

            self.asset.transfer_from(self.ledger_id, user, self.ledger_id, amount)
            txn.on_rollback(lambda: self.asset.transfer(self.ledger_id, user, amount))

            self.strategy.deposit(amount)
            txn.on_rollback(lambda: self.strategy.withdraw(amount))

            position = self._positions.get(user) or Position.open(user, self.local_domain)
            position = position.with_collateral(position.collateral + amount)
            self._positions[user] = position
            self._register_user(user)

        logger.info(f"Deposit: user={user} amount={amount} collateral={position.collateral}")
        return position.snapshot()

    def withdraw(self, user: str, amount: Decimal) -> Decimal:
        """Вывод collateral пользователю.

        Returns:
            Фактически выведенная сумма (может быть меньше запрошенной при
            неликвидности backend; collateral уменьшается на запрошенную)

        Raises:
            InvalidAmount: amount <= 0
            InsufficientCollateral: amount > collateral
        """
        amount = validate_positive_amount(amount)

        with self.transaction() as txn:
            self._require_active()
            position = self._debit(user, amount)

            actual = self._withdraw_from_strategy(txn, amount)
            if actual > 0:
                self.asset.transfer(self.ledger_id, user, actual)

        logger.info(
            f"Withdraw: user={user} requested={amount} returned={actual} "
            f"collateral={position.collateral}"
        )
        return actual

    def release_for_rebalance(self, user: str, amount: Decimal, bridge_account: str) -> Decimal:
        """Списание collateral для межсетевой ребалансировки.

        Health factor сбрасывается в None: флаг снимается, позиция ждёт
        свежих показаний oracle. Выведенный актив передаётся транспорту.

        Returns:
            Фактически выведенная из стратегии сумма
        """
        amount = validate_positive_amount(amount)

        with self.transaction() as txn:
            self._require_active()
            position = self._debit(user, amount)
            self._positions[user] = position.with_health_factor(None)

            actual = self._withdraw_from_strategy(txn, amount)
            if actual > 0:
                self.asset.transfer(self.ledger_id, bridge_account, actual)
                txn.on_rollback(
                    lambda: self.asset.transfer(bridge_account, self.ledger_id, actual)
                )

        logger.info(
            f"Released for rebalance: user={user} requested={amount} returned={actual}"
        )
        return actual

    def _debit(self, user: str, amount: Decimal) -> Position:
        position = self._positions.get(user)
        collateral = position.collateral if position is not None else ZERO
        if position is None or amount > collateral:
            raise InsufficientCollateral(
                f"Insufficient collateral for {user}: requested {amount}, available {collateral}"
            )
        position = position.with_collateral(collateral - amount)
        self._positions[user] = position
        return position

    def _withdraw_from_strategy(self, txn: Transaction, amount: Decimal) -> Decimal:
        actual = self.strategy.withdraw(amount)
        if actual > 0:
            txn.on_rollback(lambda: self.strategy.deposit(actual))
        if actual < amount:
            logger.warning(f"Strategy shortfall: requested {amount}, returned {actual}")
        return actual

    # =========================================================================
    # HEALTH
    # =========================================================================

    def apply_health_factor(self, user: str, value: Optional[Decimal]) -> Position:
        """Установка health factor с атомарным пересчётом needs_rebalance.

        None сбрасывает показания (флаг снимается).

        Raises:
            UnknownPosition: у пользователя нет позиции
            InvalidHealthFactor: значение отрицательное
        """
        with self.transaction():
            position = self._positions.get(user)
            if position is None:
                raise UnknownPosition(f"No position for {user}")
            position = position.with_health_factor(value)
            self._positions[user] = position
        return position

    # =========================================================================
    # REMOTE CREDIT
    # =========================================================================

    def credit_remote(self, message: RebalanceMessage) -> bool:
        """Кредит позиции по входящему сообщению ребалансировки.

        Returns:
            True если позиция зачислена, False если сообщение — дубликат
        """
        key = message.dedup_key

        with self.transaction() as txn:
            self._require_active()
            if key in self._inbox:
                logger.warning(f"Duplicate rebalance message ignored: {key}")
                return False

            if message.amount > 0:
                self.strategy.deposit(message.amount)
                txn.on_rollback(lambda: self.strategy.withdraw(message.amount))

            position = self._positions.get(message.user) or Position.open(
                message.user, self.local_domain
            )
            position = position.with_collateral(position.collateral + message.amount)
            self._positions[message.user] = position
            self._register_user(message.user)
            self._inbox.record(key)

        logger.info(
            f"Remote credit: user={message.user} amount={message.amount} "
            f"from={message.source_domain.value} nonce={message.nonce}"
        )
        return True

    def is_processed(self, source_domain: Network, nonce: int) -> bool:
        with self._lock:
            return (source_domain.value, nonce) in self._inbox

    # =========================================================================
    # READS
    # =========================================================================

    def get_position(self, user: str) -> PositionSnapshot:
        """Снапшот позиции; для неизвестного пользователя — пустой снапшот."""
        with self._lock:
            position = self._positions.get(user)
        if position is None:
            return PositionSnapshot()
        return position.snapshot()

    def position_record(self, user: str) -> Optional[Position]:
        with self._lock:
            return self._positions.get(user)

    def is_known_user(self, user: str) -> bool:
        with self._lock:
            return user in self._known_set

    def known_users(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._known_users)

    def find_first(self, predicate: Callable[[Position], bool]) -> Optional[Position]:
        """Первая позиция в порядке реестра, удовлетворяющая predicate."""
        with self._lock:
            for user in self._known_users:
                position = self._positions[user]
                if predicate(position):
                    return position
        return None

    def total_collateral(self) -> Decimal:
        with self._lock:
            return sum((p.collateral for p in self._positions.values()), ZERO)

    def collateral_value(self, user: str) -> Decimal:
        """Стоимость collateral в USD по price feed."""
        if self.price_feed is None:
            raise NotInitialized(f"Ledger {self.ledger_id} has no price feed configured")
        collateral = self.get_position(user).collateral
        return to_amount(collateral * self.price_feed.latest_price())

    def _register_user(self, user: str) -> None:
        if user not in self._known_set:
            self._known_set.add(user)
            self._known_users.append(user)
