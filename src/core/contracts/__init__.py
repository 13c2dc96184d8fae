"""
Contract Validation Module

JSON Schema контракты проводных форматов: сообщение ребалансировки и
таблица маршрутов.
"""

from .validators import (
    DEFAULT_SCHEMA_DIR,
    ContractValidator,
    RebalanceMessageValidator,
    RouteTableValidator,
    SchemaLoader,
    validate_rebalance_message,
    validate_route_table,
)

__all__ = [
    "DEFAULT_SCHEMA_DIR",
    "SchemaLoader",
    "ContractValidator",
    "RebalanceMessageValidator",
    "RouteTableValidator",
    "validate_rebalance_message",
    "validate_route_table",
]
