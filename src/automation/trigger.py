"""Automation Trigger — пара poll/act для внешнего планировщика.

poll():
- линейный скан реестра пользователей в порядке регистрации
- первый пользователь с needs_rebalance → (True, payload), иначе (False, b"")
- только чтение, детерминирован для снапшота, безопасен при частых вызовах

act(payload):
- повторная проверка флага в момент вызова (гонка с health update или
  предыдущим act) — устаревший вызов возвращает STALE_REBALANCE, не ошибку
- иначе намерение на весь collateral → Dispatcher

Возвращается ровно один пользователь за цикл: стоимость вызова предсказуема.
Таймеров и фонового исполнения нет — каденс задаёт планировщик.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from src.automation.payload import decode_user_payload, encode_user_payload
from src.core.domain.messages import RebalanceIntent
from src.core.domain.routes import Network
from src.dispatch.dispatcher import CrossChainDispatcher, DispatchReceipt
from src.ledger.position_ledger import PositionLedger

logger = logging.getLogger(__name__)


class UpkeepOutcome(str, Enum):
    """Исход act()."""

    DISPATCHED = "DISPATCHED"
    STALE_REBALANCE = "STALE_REBALANCE"  # флаг уже снят, no-op
    NOTHING_TO_MOVE = "NOTHING_TO_MOVE"  # collateral нулевой, флаг снят без отправки


@dataclass(frozen=True)
class UpkeepResult:
    """Результат act()."""

    outcome: UpkeepOutcome
    user: str
    receipt: Optional[DispatchReceipt]
    details: str

    @property
    def performed(self) -> bool:
        return self.outcome == UpkeepOutcome.DISPATCHED


class AutomationTrigger:
    """Stateless пара poll/act над ledger и dispatcher."""

    def __init__(
        self,
        ledger: PositionLedger,
        dispatcher: CrossChainDispatcher,
        target_domain: Optional[Network] = None,
    ):
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.target_domain = target_domain

    def poll(self) -> Tuple[bool, bytes]:
        position = self.ledger.find_first(lambda p: p.needs_rebalance)
        if position is None:
            logger.debug("Poll: no position needs rebalance")
            return False, b""
        logger.debug(f"Poll: {position.owner} needs rebalance")
        return True, encode_user_payload(position.owner)

    def act(self, payload: bytes) -> UpkeepResult:
        """
        Raises:
            InvalidPayload: payload не декодируется
            RebalanceSendRejected: синхронный отказ отправки
        """
        user = decode_user_payload(payload)

        with self.ledger.transaction():
            position = self.ledger.position_record(user)
            if position is None or not position.needs_rebalance:
                logger.info(f"Act: stale rebalance for {user}, nothing to do")
                return UpkeepResult(
                    outcome=UpkeepOutcome.STALE_REBALANCE,
                    user=user,
                    receipt=None,
                    details="needs_rebalance already cleared",
                )

            if position.collateral <= 0:
                # Флаг снимается без отправки сообщения
                self.ledger.apply_health_factor(user, None)
                logger.info(f"Act: {user} flagged with zero collateral, flag cleared")
                return UpkeepResult(
                    outcome=UpkeepOutcome.NOTHING_TO_MOVE,
                    user=user,
                    receipt=None,
                    details="zero collateral, health factor reset",
                )

            intent = RebalanceIntent(
                user=user,
                target_domain=self.target_domain,
                amount=position.collateral,
            )
            receipt = self.dispatcher.rebalance(intent)

        return UpkeepResult(
            outcome=UpkeepOutcome.DISPATCHED,
            user=user,
            receipt=receipt,
            details=f"dispatched {receipt.message.amount} to {receipt.route.domain.value}",
        )
