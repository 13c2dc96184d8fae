"""EngineBuilder — сборка движка домена с late-bound стратегией.

Ledger создаётся с непривязанной стратегией, затем InitializationCoordinator
выполняет обе фазы привязки; самоссылающегося конструктора нет.
"""

import logging
from typing import Mapping, Optional, Union

from src.automation.trigger import AutomationTrigger
from src.coordinator.coordinator import InitializationCoordinator
from src.core.config import EngineConfig
from src.core.domain.routes import Network, RouteConfig
from src.dispatch.dispatcher import CrossChainDispatcher
from src.dispatch.policies import RouteSelectionPolicy
from src.dispatch.routes import RouteRegistry
from src.dispatch.transport import MessageTransport
from src.engine.engine import YieldEngine
from src.health.monitor import HealthMonitor
from src.ledger.asset import AssetLedger
from src.ledger.position_ledger import PositionLedger
from src.ledger.price_feed import PriceFeed
from src.strategy.base import StrategyAdapter

logger = logging.getLogger(__name__)


class EngineBuilder:
    """Пошаговая сборка YieldEngine."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self._strategy: Optional[StrategyAdapter] = None
        self._asset: Optional[AssetLedger] = None
        self._price_feed: Optional[PriceFeed] = None
        self._transport: Optional[MessageTransport] = None
        self._routes: Optional[RouteRegistry] = None
        self._policy: Optional[RouteSelectionPolicy] = None
        self._target_domain: Optional[Network] = None

    def with_strategy(self, strategy: StrategyAdapter) -> "EngineBuilder":
        self._strategy = strategy
        return self

    def with_asset(self, asset: AssetLedger) -> "EngineBuilder":
        self._asset = asset
        return self

    def with_price_feed(self, price_feed: PriceFeed) -> "EngineBuilder":
        self._price_feed = price_feed
        return self

    def with_transport(self, transport: MessageTransport) -> "EngineBuilder":
        self._transport = transport
        return self

    def with_routes(
        self,
        routes: Union[RouteRegistry, Mapping[str, RouteConfig]],
    ) -> "EngineBuilder":
        """Реестр маршрутов или таблица маршрутов (config/routes.json)."""
        if not isinstance(routes, RouteRegistry):
            routes = RouteRegistry.from_route_table(routes, self.config.local_domain)
        self._routes = routes
        return self

    def with_policy(self, policy: RouteSelectionPolicy) -> "EngineBuilder":
        self._policy = policy
        return self

    def with_target_domain(self, domain: Network) -> "EngineBuilder":
        self._target_domain = domain
        return self

    def build(self) -> YieldEngine:
        """
        Raises:
            ValueError: не задан обязательный коллаборатор
            AlreadyInitialized: стратегия уже привязана к другому ledger
        """
        missing = [
            name
            for name, value in (
                ("strategy", self._strategy),
                ("asset", self._asset),
                ("transport", self._transport),
                ("routes", self._routes),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"EngineBuilder missing collaborators: {', '.join(missing)}")

        ledger = PositionLedger(
            ledger_id=self.config.ledger_id,
            local_domain=self.config.local_domain,
            strategy=self._strategy,
            asset=self._asset,
            price_feed=self._price_feed,
        )
        InitializationCoordinator().initialize(ledger)

        if not self._routes.frozen:
            self._routes.freeze()

        dispatcher = CrossChainDispatcher(
            ledger=ledger,
            routes=self._routes,
            transport=self._transport,
            bridge_account=self.config.transport_endpoint,
            policy=self._policy,
        )
        engine = YieldEngine(
            config=self.config,
            ledger=ledger,
            monitor=HealthMonitor(ledger, self.config.oracle_identity),
            dispatcher=dispatcher,
            trigger=AutomationTrigger(ledger, dispatcher, self._target_domain),
        )
        self._transport.register_receiver(
            self.config.transport_endpoint,
            engine.receive_message,
            custody=(self._asset, self.config.ledger_id),
        )

        logger.info(
            f"Engine built: domain={self.config.local_domain.value} ledger={self.config.ledger_id} "
            f"routes={len(self._routes)}"
        )
        return engine
