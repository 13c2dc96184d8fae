"""RouteRegistry — статическая таблица маршрутов Dispatcher.

Маршруты регистрируются на этапе конфигурации; после freeze() таблица
неизменяема. Маршрут в собственный домен зарегистрировать нельзя.
"""

import logging
from typing import Dict, Mapping, Tuple

from src.core.domain.routes import ChainRoute, Network, RouteConfig
from src.core.errors import RouteRegistryFrozen, UnknownRoute

logger = logging.getLogger(__name__)


class RouteRegistry:
    """Маршруты из локального домена в удалённые."""

    def __init__(self, local_domain: Network):
        self.local_domain = local_domain
        self._routes: Dict[Network, ChainRoute] = {}
        self._frozen = False

    @classmethod
    def from_route_table(
        cls,
        table: Mapping[str, RouteConfig],
        local_domain: Network,
    ) -> "RouteRegistry":
        """Реестр из таблицы маршрутов: все домены, кроме локального; сразу заморожен."""
        registry = cls(local_domain)
        for route_config in table.values():
            if route_config.name != local_domain:
                registry.register(route_config.to_route())
        registry.freeze()
        return registry

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, route: ChainRoute) -> None:
        """
        Raises:
            RouteRegistryFrozen: после freeze()
            ValueError: маршрут в локальный домен или повторная регистрация домена
        """
        if self._frozen:
            raise RouteRegistryFrozen(f"Cannot register {route.domain.value}: registry frozen")
        if route.domain == self.local_domain:
            raise ValueError(f"Cannot route to local domain {route.domain.value}")
        if route.domain in self._routes:
            raise ValueError(f"Route to {route.domain.value} already registered")
        self._routes[route.domain] = route
        logger.debug(f"Route registered: {route.domain.value} via {route.endpoint}")

    def freeze(self) -> None:
        self._frozen = True

    def get(self, domain: Network) -> ChainRoute:
        try:
            return self._routes[domain]
        except KeyError:
            raise UnknownRoute(f"No route to {domain.value}") from None

    def routes(self) -> Tuple[ChainRoute, ...]:
        """Маршруты в порядке регистрации."""
        return tuple(self._routes.values())

    def __contains__(self, domain: Network) -> bool:
        return domain in self._routes

    def __len__(self) -> int:
        return len(self._routes)
