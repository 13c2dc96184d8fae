"""
Domain models and value objects.

Contains fundamental domain entities: Position, ChainRoute, RebalanceIntent,
RebalanceMessage and fixed-point amount converters.
"""

from src.core.domain.amounts import (
    AMOUNT_QUANTUM,
    ASSET_DECIMALS,
    HEALTH_FACTOR_DECIMALS,
    PRICE_FEED_DECIMALS,
    REBALANCE_THRESHOLD,
    below_rebalance_threshold,
    from_base_units,
    health_factor_from_wad,
    to_amount,
    to_base_units,
    to_health_factor,
    validate_positive_amount,
)
from src.core.domain.messages import RebalanceIntent, RebalanceMessage
from src.core.domain.position import Position, PositionSnapshot
from src.core.domain.routes import ChainRoute, Network, RouteConfig

__all__ = [
    # Amounts module
    "ASSET_DECIMALS",
    "AMOUNT_QUANTUM",
    "HEALTH_FACTOR_DECIMALS",
    "PRICE_FEED_DECIMALS",
    "REBALANCE_THRESHOLD",
    "below_rebalance_threshold",
    "to_amount",
    "to_health_factor",
    "to_base_units",
    "from_base_units",
    "health_factor_from_wad",
    "validate_positive_amount",
    # Position model
    "Position",
    "PositionSnapshot",
    # Routes
    "Network",
    "ChainRoute",
    "RouteConfig",
    # Messages
    "RebalanceIntent",
    "RebalanceMessage",
]
