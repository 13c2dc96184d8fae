"""Dispatch — межсетевая отправка сообщений ребалансировки.

- CrossChainDispatcher: намерение → вывод из стратегии → сообщение → транспорт
- RouteRegistry: статическая таблица маршрутов
- Политики выбора маршрута (заменяемые)
- MessageTransport / InMemoryTransport: коллаборатор доставки
"""

from .dispatcher import CrossChainDispatcher, DispatchReceipt
from .policies import (
    BreachWeightedPolicy,
    HighestYieldPolicy,
    PreferredDomainPolicy,
    RouteSelectionPolicy,
)
from .routes import RouteRegistry
from .transport import Envelope, InMemoryTransport, MessageTransport

__all__ = [
    "CrossChainDispatcher",
    "DispatchReceipt",
    "RouteRegistry",
    "RouteSelectionPolicy",
    "PreferredDomainPolicy",
    "BreachWeightedPolicy",
    "HighestYieldPolicy",
    "MessageTransport",
    "InMemoryTransport",
    "Envelope",
]
