"""Cross-Chain Dispatcher — превращение намерения в исходящее сообщение.

Порядок rebalance(intent):
1. Политика выбирает маршрут (не локальный домен)
2. Ledger списывает collateral и выводит его из стратегии
3. Сообщение строится с ФАКТИЧЕСКИ выведенной суммой и новым nonce
4. Проводной формат проверяется контрактом rebalance_message.json
5. Транспорт принимает сообщение — на этом rebalance() завершается

Локальный успех = "сообщение принято к отправке". Подтверждения доставки
Dispatcher не ждёт; отменить принятое сообщение нельзя. Синхронный отказ на
шагах 1, 4, 5 → RebalanceSendRejected, а ledger и стратегия откатываются.
"""

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from jsonschema import ValidationError as SchemaValidationError

from src.core.contracts import RebalanceMessageValidator
from src.core.domain.messages import RebalanceIntent, RebalanceMessage
from src.core.domain.routes import ChainRoute
from src.core.errors import RebalanceSendRejected, TransportRejected, UnknownRoute
from src.dispatch.policies import PreferredDomainPolicy, RouteSelectionPolicy
from src.dispatch.routes import RouteRegistry
from src.dispatch.transport import MessageTransport
from src.ledger.position_ledger import PositionLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchReceipt:
    """Результат принятого к отправке сообщения."""

    message_id: str
    message: RebalanceMessage
    route: ChainRoute
    requested_amount: Decimal

    @property
    def shortfall(self) -> Decimal:
        """Сколько стратегия не вернула относительно запрошенного."""
        return self.requested_amount - self.message.amount


class CrossChainDispatcher:
    """Отправка сообщений ребалансировки из локального домена."""

    def __init__(
        self,
        ledger: PositionLedger,
        routes: RouteRegistry,
        transport: MessageTransport,
        bridge_account: str,
        policy: Optional[RouteSelectionPolicy] = None,
    ):
        if routes.local_domain != ledger.local_domain:
            raise ValueError(
                f"Route registry for {routes.local_domain.value} used with ledger "
                f"in {ledger.local_domain.value}"
            )
        self.ledger = ledger
        self.routes = routes
        self.transport = transport
        self.bridge_account = bridge_account
        self.policy = policy or PreferredDomainPolicy()
        self._validator = RebalanceMessageValidator()
        self._nonce_lock = threading.Lock()
        self._next_nonce = 0

    def _allocate_nonce(self) -> int:
        with self._nonce_lock:
            nonce = self._next_nonce
            self._next_nonce += 1
            return nonce

    def rebalance(self, intent: RebalanceIntent) -> DispatchReceipt:
        """Вывести collateral пользователя и отправить сообщение.

        Raises:
            RebalanceSendRejected: маршрут не выбран, сообщение не прошло
                контракт или транспорт отказал синхронно
            InsufficientCollateral: amount намерения больше collateral
        """
        with self.ledger.transaction():
            position = self.ledger.position_record(intent.user)
            route = self._select_route(intent, position)

            actual = self.ledger.release_for_rebalance(
                intent.user, intent.amount, self.bridge_account
            )
            message = RebalanceMessage(
                source_domain=self.ledger.local_domain,
                user=intent.user,
                amount=actual,
                nonce=self._allocate_nonce(),
                target_hint=route.domain,
            )
            message_id = self._submit(route, message)

        receipt = DispatchReceipt(
            message_id=message_id,
            message=message,
            route=route,
            requested_amount=intent.amount,
        )
        logger.info(
            f"Rebalance dispatched: user={intent.user} amount={actual} "
            f"to={route.domain.value} nonce={message.nonce} id={message_id}"
        )
        return receipt

    def _select_route(self, intent, position) -> ChainRoute:
        try:
            route = self.policy.select(intent, position, self.routes)
        except UnknownRoute as e:
            raise RebalanceSendRejected(f"No route for {intent.user}: {e}") from e
        if route.domain == self.ledger.local_domain:
            raise RebalanceSendRejected(
                f"Policy selected local domain {route.domain.value} for {intent.user}"
            )
        return route

    def _submit(self, route: ChainRoute, message: RebalanceMessage) -> str:
        try:
            self._validator.validate(message.to_wire())
        except SchemaValidationError as e:
            raise RebalanceSendRejected(f"Malformed rebalance message: {e.message}") from e
        try:
            return self.transport.send(route, message)
        except TransportRejected as e:
            raise RebalanceSendRejected(f"Transport rejected message: {e}") from e
