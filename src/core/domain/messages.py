"""
Messages — Намерение ребалансировки и межсетевое сообщение

RebalanceIntent — эфемерное намерение от Automation Trigger, потребляется
Dispatcher ровно один раз и нигде не сохраняется.

RebalanceMessage — сообщение, уходящее в транспорт. Проводной формат
(to_wire) соответствует contracts/schema/rebalance_message.json.

Идемпотентность: (source_domain, nonce) уникален для каждого сообщения,
приёмник обязан дедуплицировать по этому ключу (доставка at-least-once).
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from src.core.domain.amounts import from_base_units, to_base_units
from src.core.domain.routes import Network


class RebalanceIntent(BaseModel):
    """Намерение переместить collateral пользователя."""

    user: str = Field(..., min_length=1)
    target_domain: Optional[Network] = Field(
        None, description="Предпочтительный домен (подсказка для политики выбора маршрута)"
    )
    amount: Decimal = Field(..., gt=0)

    model_config = {"frozen": True}


class RebalanceMessage(BaseModel):
    """Исходящее сообщение ребалансировки."""

    source_domain: Network
    user: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, description="Фактически выведенная сумма")
    nonce: int = Field(..., ge=0)
    target_hint: Network

    model_config = {"frozen": True}

    @property
    def dedup_key(self) -> tuple[str, int]:
        return (self.source_domain.value, self.nonce)

    def to_wire(self) -> Dict[str, Any]:
        """Сериализация в проводной формат (сумма в минимальных единицах)."""
        return {
            "source_domain": self.source_domain.value,
            "user": self.user,
            "amount": to_base_units(self.amount),
            "nonce": self.nonce,
            "target_hint": self.target_hint.value,
        }

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "RebalanceMessage":
        return cls(
            source_domain=Network(data["source_domain"]),
            user=data["user"],
            amount=from_base_units(data["amount"]),
            nonce=data["nonce"],
            target_hint=Network(data["target_hint"]),
        )
