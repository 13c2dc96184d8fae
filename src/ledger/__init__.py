"""Ledger — авторитетное состояние позиций домена.

- PositionLedger: позиции, реестр пользователей, транзакции
- AssetLedger: актив с allowance (in-memory коллаборатор)
- NonceRegistry: дедупликация входящих сообщений
- PriceFeed: оценка collateral
"""

from .asset import AssetLedger
from .inbox import NonceRegistry
from .position_ledger import PositionLedger, Transaction
from .price_feed import PriceFeed, RoundData, StaticPriceFeed

__all__ = [
    "PositionLedger",
    "Transaction",
    "AssetLedger",
    "NonceRegistry",
    "PriceFeed",
    "RoundData",
    "StaticPriceFeed",
]
