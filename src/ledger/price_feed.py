"""Price feed — оценка collateral в USD.

Ledger не занимается price discovery: цена берётся из внешнего feed
как есть (answer с PRICE_FEED_DECIMALS знаками).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from src.core.domain.amounts import PRICE_FEED_DECIMALS


@dataclass(frozen=True)
class RoundData:
    """Последний раунд feed."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class PriceFeed(ABC):
    """Источник цены актива."""

    decimals: int = PRICE_FEED_DECIMALS

    @abstractmethod
    def latest_round_data(self) -> RoundData:
        ...

    def latest_price(self) -> Decimal:
        """Цена последнего раунда как Decimal."""
        answer = self.latest_round_data().answer
        if answer <= 0:
            raise ValueError(f"Price feed returned non-positive answer {answer}")
        return Decimal(answer).scaleb(-self.decimals)


class StaticPriceFeed(PriceFeed):
    """Feed с фиксированной ценой ($1.00 по умолчанию)."""

    def __init__(self, answer: int = 100_000_000, timestamp: int = 0):
        self._answer = answer
        self._timestamp = timestamp

    def set_price(self, answer: int) -> None:
        self._answer = answer

    def latest_round_data(self) -> RoundData:
        return RoundData(
            round_id=1,
            answer=self._answer,
            started_at=self._timestamp,
            updated_at=self._timestamp,
            answered_in_round=1,
        )
