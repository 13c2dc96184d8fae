"""Route selection policies — выбор домена назначения ребалансировки.

Политика заменяема и не зашита в Dispatcher:
- PreferredDomainPolicy: подсказка намерения → сконфигурированный домен → первый маршрут
- BreachWeightedPolicy: чем глубже пробой порога, тем дальше по заданному порядку
  доменов (от ближайшего к наиболее консервативному)
- HighestYieldPolicy: домен с максимальной котировкой доходности
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Mapping, Optional, Sequence, Union

from src.core.domain.amounts import REBALANCE_THRESHOLD
from src.core.domain.messages import RebalanceIntent
from src.core.domain.position import Position
from src.core.domain.routes import ChainRoute, Network
from src.core.errors import UnknownRoute
from src.dispatch.routes import RouteRegistry

YieldQuotes = Mapping[Network, Decimal]


class RouteSelectionPolicy(ABC):
    """Интерфейс политики выбора маршрута."""

    @abstractmethod
    def select(
        self,
        intent: RebalanceIntent,
        position: Optional[Position],
        registry: RouteRegistry,
    ) -> ChainRoute:
        """
        Raises:
            UnknownRoute: подходящего маршрута нет
        """


class PreferredDomainPolicy(RouteSelectionPolicy):
    """Подсказка из намерения, иначе предпочтительный домен, иначе первый маршрут."""

    def __init__(self, preferred: Optional[Network] = None):
        self.preferred = preferred

    def select(self, intent, position, registry):
        domain = intent.target_domain or self.preferred
        if domain is not None:
            return registry.get(domain)
        routes = registry.routes()
        if not routes:
            raise UnknownRoute("No routes registered")
        return routes[0]


class BreachWeightedPolicy(RouteSelectionPolicy):
    """Выбор по глубине пробоя порога.

    breach = clip((threshold - hf) / threshold, 0, 1)
    index = min(floor(breach × N), N - 1) по зарегистрированным доменам ordering
    """

    def __init__(
        self,
        ordering: Sequence[Network],
        threshold: Decimal = REBALANCE_THRESHOLD,
    ):
        if not ordering:
            raise ValueError("ordering must contain at least one domain")
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.ordering = tuple(ordering)
        self.threshold = Decimal(threshold)

    def breach_degree(self, health_factor: Optional[Decimal]) -> Decimal:
        if health_factor is None:
            return Decimal(0)
        breach = (self.threshold - health_factor) / self.threshold
        return max(Decimal(0), min(Decimal(1), breach))

    def select(self, intent, position, registry):
        candidates = [domain for domain in self.ordering if domain in registry]
        if not candidates:
            raise UnknownRoute("None of the ordered domains has a registered route")
        hf = position.last_health_factor if position is not None else None
        breach = self.breach_degree(hf)
        index = min(int(breach * len(candidates)), len(candidates) - 1)
        return registry.get(candidates[index])


class HighestYieldPolicy(RouteSelectionPolicy):
    """Маршрут в домен с наибольшей котировкой доходности.

    Котировки — mapping или callable без аргументов (свежие значения на
    каждый вызов). Домены без котировки пропускаются; при равенстве
    побеждает маршрут, зарегистрированный раньше.
    """

    def __init__(self, quotes: Union[YieldQuotes, Callable[[], YieldQuotes]]):
        self._quotes = quotes

    def current_quotes(self) -> YieldQuotes:
        return self._quotes() if callable(self._quotes) else self._quotes

    def select(self, intent, position, registry):
        quotes = self.current_quotes()
        best: Optional[ChainRoute] = None
        best_rate: Optional[Decimal] = None
        for route in registry.routes():
            rate = quotes.get(route.domain)
            if rate is None:
                continue
            if best_rate is None or rate > best_rate:
                best, best_rate = route, rate
        if best is None:
            raise UnknownRoute("No yield quote for any registered route")
        return best
