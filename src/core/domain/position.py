"""
Position — Модель позиции пользователя в ledger

Immutable Pydantic модель. Ledger хранит по одному экземпляру на пользователя
и заменяет его новым экземпляром при каждом изменении (deposit, withdraw,
health update, ребалансировка).

ИНВАРИАНТ:
    needs_rebalance == (last_health_factor is not None
                        and last_health_factor < REBALANCE_THRESHOLD)

Проверяется model_validator на каждом создании экземпляра, поэтому позиция
с рассогласованным флагом не может существовать.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.domain.amounts import (
    ZERO,
    below_rebalance_threshold,
    to_amount,
    to_health_factor,
)
from src.core.domain.routes import Network


# =============================================================================
# POSITION MODEL
# =============================================================================


class Position(BaseModel):
    """
    Позиция пользователя.

    Создаётся при первом депозите (или первом входящем кредите из другого
    домена), никогда не удаляется: нулевой collateral — валидное состояние.
    """

    owner: str = Field(..., min_length=1, description="Идентичность владельца")
    collateral: Decimal = Field(ZERO, ge=0, description="Collateral в единицах актива")
    last_health_factor: Optional[Decimal] = Field(
        None, ge=0, description="Последний health factor от oracle (None — нет показаний)"
    )
    needs_rebalance: bool = Field(False, description="Флаг ребалансировки")
    home_domain: Network = Field(..., description="Домен, где позиция была создана")

    model_config = {"frozen": True}

    @field_validator("collateral")
    @classmethod
    def quantize_collateral(cls, v: Decimal) -> Decimal:
        return to_amount(v)

    @model_validator(mode="after")
    def check_rebalance_flag(self) -> "Position":
        """Флаг обязан совпадать с порогом для текущего health factor."""
        expected = below_rebalance_threshold(self.last_health_factor)
        if self.needs_rebalance != expected:
            raise ValueError(
                f"needs_rebalance={self.needs_rebalance} inconsistent with "
                f"last_health_factor={self.last_health_factor}"
            )
        return self

    # -------------------------------------------------------------------------
    # Переходы (каждый возвращает новый экземпляр)
    # -------------------------------------------------------------------------

    @classmethod
    def open(cls, owner: str, home_domain: Network) -> "Position":
        """Пустая позиция: нулевой collateral, без показаний oracle."""
        return cls(owner=owner, home_domain=home_domain)

    def with_collateral(self, collateral: Decimal) -> "Position":
        return self._replace(collateral=collateral)

    def with_health_factor(self, value: Optional[Decimal]) -> "Position":
        """
        Установка health factor с атомарным пересчётом флага.

        None сбрасывает показания (после ребалансировки позиция ждёт
        свежего значения от oracle).
        """
        hf = None if value is None else to_health_factor(value)
        return self._replace(
            last_health_factor=hf,
            needs_rebalance=below_rebalance_threshold(hf),
        )

    def _replace(self, **changes) -> "Position":
        data = self.model_dump()
        data.update(changes)
        return self.__class__(**data)

    def snapshot(self) -> "PositionSnapshot":
        return PositionSnapshot(
            collateral=self.collateral,
            last_health_factor=self.last_health_factor,
            needs_rebalance=self.needs_rebalance,
        )


class PositionSnapshot(BaseModel):
    """Read-only представление позиции для внешних вызывающих."""

    collateral: Decimal = Field(ZERO, ge=0)
    last_health_factor: Optional[Decimal] = None
    needs_rebalance: bool = False

    model_config = {"frozen": True}
