"""YieldEngine — внешний интерфейс движка одного домена.

Собирает Ledger, Health Monitor, Automation Trigger и Dispatcher за одним
фасадом. Идентичность вызывающего передаётся явно в каждую операцию, где
она важна (депозитор, oracle, транспорт).
"""

import logging
from decimal import Decimal
from typing import Tuple

from src.automation.trigger import AutomationTrigger, UpkeepResult
from src.core.config import EngineConfig
from src.core.domain.messages import RebalanceMessage
from src.core.domain.position import PositionSnapshot
from src.core.errors import Unauthorized
from src.dispatch.dispatcher import CrossChainDispatcher
from src.health.monitor import HealthMonitor, HealthUpdateResult
from src.ledger.position_ledger import PositionLedger

logger = logging.getLogger(__name__)


class YieldEngine:
    """Фасад движка."""

    def __init__(
        self,
        config: EngineConfig,
        ledger: PositionLedger,
        monitor: HealthMonitor,
        dispatcher: CrossChainDispatcher,
        trigger: AutomationTrigger,
    ):
        self.config = config
        self.ledger = ledger
        self.monitor = monitor
        self.dispatcher = dispatcher
        self.trigger = trigger

    @property
    def strategy(self):
        return self.ledger.strategy

    # -------------------------------------------------------------------------
    # Депозитор
    # -------------------------------------------------------------------------

    def deposit(self, caller: str, amount: Decimal) -> PositionSnapshot:
        """Депозит; caller заранее выдал ledger allowance на amount."""
        return self.ledger.deposit(caller, amount)

    def withdraw(self, caller: str, amount: Decimal) -> Decimal:
        return self.ledger.withdraw(caller, amount)

    # -------------------------------------------------------------------------
    # Oracle
    # -------------------------------------------------------------------------

    def update_health_factor(self, caller: str, user: str, value) -> HealthUpdateResult:
        return self.monitor.update_health_factor(caller, user, value)

    # -------------------------------------------------------------------------
    # Планировщик
    # -------------------------------------------------------------------------

    def poll(self) -> Tuple[bool, bytes]:
        return self.trigger.poll()

    def act(self, payload: bytes) -> UpkeepResult:
        return self.trigger.act(payload)

    # -------------------------------------------------------------------------
    # Транспорт (входящие сообщения)
    # -------------------------------------------------------------------------

    def receive_message(self, caller: str, message: RebalanceMessage) -> bool:
        """Кредит позиции по входящему сообщению.

        Returns:
            True если зачислено, False если дубликат

        Raises:
            Unauthorized: caller не локальный транспорт или источник не
                является известным удалённым доменом
        """
        if caller != self.config.transport_endpoint:
            raise Unauthorized(f"Not authorized: {caller} is not the local transport")
        if message.source_domain not in self.dispatcher.routes:
            raise Unauthorized(
                f"Message from unknown domain {message.source_domain.value}"
            )
        if message.target_hint != self.config.local_domain:
            logger.warning(
                f"Message nonce={message.nonce} hinted {message.target_hint.value}, "
                f"received in {self.config.local_domain.value}"
            )
        return self.ledger.credit_remote(message)

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def get_position(self, user: str) -> PositionSnapshot:
        return self.ledger.get_position(user)

    def is_known_user(self, user: str) -> bool:
        return self.ledger.is_known_user(user)

    def collateral_value(self, user: str) -> Decimal:
        return self.ledger.collateral_value(user)
