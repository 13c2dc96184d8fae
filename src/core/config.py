"""
Config — Конфигурация движка и статическая таблица маршрутов

EngineConfig задаёт явные "синглтон"-авторитеты домена (oracle, транспорт)
как поля конфигурации, выставляемые при конструировании. Глобального
состояния нет.

Таблица маршрутов (config/routes.json) валидируется дважды:
JSON Schema контракт (route_table.json) и Pydantic RouteConfig.
"""

import json
from pathlib import Path
from typing import Dict, Union

from pydantic import BaseModel, Field

from src.core.contracts import validate_route_table
from src.core.domain.routes import Network, RouteConfig


DEFAULT_ROUTE_TABLE_PATH = Path(__file__).parent.parent.parent / "config" / "routes.json"


class EngineConfig(BaseModel):
    """
    Конфигурация одного экземпляра движка (один домен — один ledger).
    """

    ledger_id: str = Field(..., min_length=1, description="Идентичность ledger (потребитель стратегии)")
    local_domain: Network = Field(..., description="Домен этого экземпляра")
    transport_endpoint: str = Field(..., min_length=1, description="Endpoint локального транспорта")
    oracle_identity: str = Field(..., min_length=1, description="Единственный допустимый источник health factor")
    price_feed: str = Field(..., min_length=1, description="Адрес price feed актива")
    asset: str = Field(..., min_length=1, description="Адрес актива")

    model_config = {"frozen": True}

    @classmethod
    def from_route(
        cls,
        route: RouteConfig,
        ledger_id: str,
        oracle_identity: str,
    ) -> "EngineConfig":
        """Конфигурация движка из записи таблицы маршрутов его домена."""
        return cls(
            ledger_id=ledger_id,
            local_domain=route.name,
            transport_endpoint=route.transport_endpoint,
            oracle_identity=oracle_identity,
            price_feed=route.price_feed,
            asset=route.asset,
        )


def parse_route_table(data: Dict[str, dict]) -> Dict[str, RouteConfig]:
    """
    Разбор таблицы маршрутов из dict.

    Raises:
        jsonschema.ValidationError: нарушение контракта route_table.json
        pydantic.ValidationError: нарушение модели RouteConfig
        ValueError: два ключа описывают один и тот же домен
    """
    validate_route_table(data)
    table = {key: RouteConfig(**entry) for key, entry in data.items()}

    seen: Dict[Network, str] = {}
    for key, route in table.items():
        if route.name in seen:
            raise ValueError(
                f"Domain {route.name.value} configured twice: '{seen[route.name]}' and '{key}'"
            )
        seen[route.name] = key
    return table


def load_route_table(path: Union[str, Path, None] = None) -> Dict[str, RouteConfig]:
    """Загрузка таблицы маршрутов из JSON файла (по умолчанию config/routes.json)."""
    route_path = Path(path) if path is not None else DEFAULT_ROUTE_TABLE_PATH
    with open(route_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return parse_route_table(data)
