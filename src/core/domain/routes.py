"""
Routes — Домены исполнения и маршруты межсетевых сообщений

ChainRoute — то, что нужно Dispatcher для отправки (selector + endpoint).
RouteConfig — полная статическая запись таблицы маршрутов домена
(адреса транспорта, price feed, актива, lending backend). Внешняя
конфигурация, не ядро логики.
"""

from enum import Enum

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Network(str, Enum):
    """Домен исполнения (порядок совпадает с индексом домена в конфигурации)."""

    ETHEREUM = "ETHEREUM"
    BASE = "BASE"
    POLYGON = "POLYGON"
    AVALANCHE = "AVALANCHE"

    @property
    def index(self) -> int:
        return list(Network).index(self)


# =============================================================================
# MODELS
# =============================================================================


class ChainRoute(BaseModel):
    """
    Маршрут в удалённый домен.

    Регистрируется на этапе конфигурации, после freeze() неизменяем.
    """

    domain: Network = Field(..., description="Домен назначения")
    selector: str = Field(..., pattern=r"^[0-9]+$", description="Chain selector транспорта")
    endpoint: str = Field(..., min_length=1, description="Endpoint приёмника в удалённом домене")

    model_config = {"frozen": True}


class RouteConfig(BaseModel):
    """
    Запись статической таблицы маршрутов: имя домена → адреса коллабораторов.
    """

    name: Network = Field(..., description="Домен")
    domain_index: int = Field(..., ge=0, description="Индекс домена")
    chain_selector: str = Field(..., pattern=r"^[0-9]+$", description="Chain selector транспорта")
    transport_endpoint: str = Field(..., min_length=1, description="Router транспорта")
    price_feed: str = Field(..., min_length=1, description="Price feed актива (USD)")
    asset: str = Field(..., min_length=1, description="Адрес актива")
    yield_token: str = Field(..., min_length=1, description="Yield-bearing токен backend")
    backend_pool: str = Field(..., min_length=1, description="Lending pool backend")
    backend_data_source: str = Field(..., min_length=1, description="Data provider backend")

    model_config = {"frozen": True}

    def to_route(self) -> ChainRoute:
        """Проекция в маршрут для Dispatcher."""
        return ChainRoute(
            domain=self.name,
            selector=self.chain_selector,
            endpoint=self.transport_endpoint,
        )
