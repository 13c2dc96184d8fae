"""Message transport — коллаборатор асинхронной межсетевой доставки.

Контракт send(): синхронно принять сообщение к отправке (вернуть message_id)
или синхронно отказать (TransportRejected). Доставка — позже, at-least-once,
без гарантии порядка между разными пользователями.

InMemoryTransport — эталонная реализация для тестов и локальных сценариев:
- доставка явно управляется вызывающим (deliver_next / deliver_all)
- ordered=False доставляет в обратном порядке (переупорядочивание)
- redeliver() повторяет уже доставленное сообщение (дубликат)
- lock-and-mint: сумма зачисляется на custody приёмника один раз на message_id
  и только после того, как приёмник применил сообщение; на стороне источника
  она остаётся на bridge-счёте
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from src.core.domain.amounts import from_base_units
from src.core.domain.messages import RebalanceMessage
from src.core.domain.routes import ChainRoute
from src.core.errors import TransportRejected
from src.ledger.asset import AssetLedger

logger = logging.getLogger(__name__)

# receiver(caller_endpoint, message) -> True если сообщение применено
Receiver = Callable[[str, RebalanceMessage], bool]
Custody = Tuple[AssetLedger, str]


class MessageTransport(ABC):
    """Интерфейс транспорта."""

    @abstractmethod
    def register_receiver(
        self,
        endpoint: str,
        receiver: Receiver,
        custody: Optional[Custody] = None,
    ) -> None:
        """Подключить приёмник входящих сообщений локального домена.

        custody — (актив, счёт), на который транспорт зачисляет перенесённую
        сумму, когда приёмник впервые применил сообщение.
        """

    @abstractmethod
    def send(self, route: ChainRoute, message: RebalanceMessage) -> str:
        """Принять сообщение к отправке.

        Returns:
            Идентификатор принятого сообщения

        Raises:
            TransportRejected: синхронный отказ
        """


@dataclass(frozen=True)
class Envelope:
    """Принятое к отправке сообщение в проводном формате."""

    message_id: str
    route: ChainRoute
    payload: Dict[str, Any]


class InMemoryTransport(MessageTransport):
    """Транспорт в памяти с явным управлением доставкой."""

    def __init__(self, ordered: bool = False):
        self.ordered = ordered
        self._receivers: Dict[str, Receiver] = {}
        self._custody: Dict[str, Custody] = {}
        self._outbox: List[Envelope] = []
        self._delivered: Dict[str, Envelope] = {}
        self._minted: Set[str] = set()
        self._sequence = 0
        self._reject_reason: Optional[str] = None

    def register_receiver(
        self,
        endpoint: str,
        receiver: Receiver,
        custody: Optional[Custody] = None,
    ) -> None:
        if endpoint in self._receivers:
            raise ValueError(f"Receiver for {endpoint} already registered")
        self._receivers[endpoint] = receiver
        if custody is not None:
            self._custody[endpoint] = custody

    def reject_sends(self, reason: Optional[str]) -> None:
        """Синхронно отклонять все send() с причиной (None — снова принимать)."""
        self._reject_reason = reason

    # -------------------------------------------------------------------------
    # MessageTransport
    # -------------------------------------------------------------------------

    def send(self, route: ChainRoute, message: RebalanceMessage) -> str:
        if self._reject_reason is not None:
            raise TransportRejected(self._reject_reason)
        if route.endpoint not in self._receivers:
            raise TransportRejected(f"No receiver at endpoint {route.endpoint}")

        self._sequence += 1
        envelope = Envelope(
            message_id=f"msg-{self._sequence}",
            route=route,
            payload=message.to_wire(),
        )
        self._outbox.append(envelope)
        logger.debug(f"Accepted {envelope.message_id} for {route.domain.value}")
        return envelope.message_id

    # -------------------------------------------------------------------------
    # Доставка
    # -------------------------------------------------------------------------

    def pending(self) -> Tuple[Envelope, ...]:
        return tuple(self._outbox)

    def deliver_next(self) -> Optional[bool]:
        """Доставить одно сообщение. None — очередь пуста."""
        if not self._outbox:
            return None
        envelope = self._outbox.pop(0) if self.ordered else self._outbox.pop()
        self._delivered[envelope.message_id] = envelope
        return self._deliver(envelope)

    def deliver_all(self) -> List[bool]:
        results = []
        while self._outbox:
            results.append(self.deliver_next())
        return results

    def redeliver(self, message_id: str) -> bool:
        """Повторная доставка уже доставленного сообщения."""
        try:
            envelope = self._delivered[message_id]
        except KeyError:
            raise KeyError(f"Message {message_id} was never delivered") from None
        return self._deliver(envelope)

    def _release_tokens(self, envelope: Envelope) -> None:
        # Один раз на message_id и только для применённого приёмником сообщения
        custody = self._custody.get(envelope.route.endpoint)
        if custody is None or envelope.message_id in self._minted:
            return
        self._minted.add(envelope.message_id)
        asset, account = custody
        amount = from_base_units(envelope.payload["amount"])
        if amount > 0:
            asset.mint(account, amount)

    def _deliver(self, envelope: Envelope) -> bool:
        receiver = self._receivers[envelope.route.endpoint]
        message = RebalanceMessage.from_wire(envelope.payload)
        applied = receiver(envelope.route.endpoint, message)
        if applied:
            self._release_tokens(envelope)
        logger.debug(f"Delivered {envelope.message_id}: applied={applied}")
        return applied
