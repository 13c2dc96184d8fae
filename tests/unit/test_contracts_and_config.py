"""
Тесты JSON Schema контрактов и конфигурации

Coverage:
- rebalance_message.json: обязательные поля, типы, запрет лишних полей
- route_table.json: формат адресов и chain selector
- load_route_table / parse_route_table: таблица по умолчанию, дубликаты доменов
- EngineConfig.from_route
"""

import json
from copy import deepcopy

import pytest
from jsonschema import ValidationError
from pydantic import ValidationError as PydanticValidationError

from src.core.config import DEFAULT_ROUTE_TABLE_PATH, EngineConfig, load_route_table, parse_route_table
from src.core.contracts import (
    RebalanceMessageValidator,
    SchemaLoader,
    validate_rebalance_message,
    validate_route_table,
)
from src.core.domain import Network


@pytest.fixture
def message() -> dict:
    return {
        "source_domain": "ETHEREUM",
        "user": "0xA11ce",
        "amount": 1_000_000_000,
        "nonce": 0,
        "target_hint": "BASE",
    }


@pytest.fixture
def raw_table() -> dict:
    """Сырая таблица маршрутов из config/routes.json"""
    path = DEFAULT_ROUTE_TABLE_PATH
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# REBALANCE MESSAGE CONTRACT
# =============================================================================


class TestRebalanceMessageContract:
    def test_valid_message(self, message) -> None:
        validate_rebalance_message(message)
        assert RebalanceMessageValidator().is_valid(message)

    @pytest.mark.parametrize("field", ["source_domain", "user", "amount", "nonce", "target_hint"])
    def test_missing_field(self, message, field) -> None:
        del message[field]
        with pytest.raises(ValidationError):
            validate_rebalance_message(message)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("amount", -1),
            ("amount", "1000"),
            ("amount", 1.5),
            ("nonce", -1),
            ("user", ""),
            ("source_domain", "SOLANA"),
            ("target_hint", "base"),
        ],
    )
    def test_invalid_values(self, message, field, value) -> None:
        message[field] = value
        with pytest.raises(ValidationError):
            validate_rebalance_message(message)

    def test_zero_amount_allowed(self, message) -> None:
        message["amount"] = 0
        validate_rebalance_message(message)

    def test_additional_properties_rejected(self, message) -> None:
        message["timestamp"] = 1700000000
        with pytest.raises(ValidationError):
            validate_rebalance_message(message)

    def test_error_messages_list_every_violation(self, message) -> None:
        message["amount"] = -1
        message["nonce"] = "zero"

        errors = RebalanceMessageValidator().error_messages(message)

        assert len(errors) == 2
        assert errors[0].startswith("amount:")
        assert errors[1].startswith("nonce:")


class TestSchemaLoader:
    def test_available_schemas(self) -> None:
        assert SchemaLoader().available() == ("rebalance_message", "route_table")

    def test_unknown_schema(self) -> None:
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("trade_plan")

    def test_missing_directory(self, tmp_path) -> None:
        with pytest.raises(RuntimeError):
            SchemaLoader(tmp_path / "absent")

    def test_invalid_schema_rejected(self, tmp_path) -> None:
        (tmp_path / "broken.json").write_text('{"type": 12}', encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON Schema"):
            SchemaLoader(tmp_path).load_schema("broken")


# =============================================================================
# ROUTE TABLE
# =============================================================================


class TestRouteTable:
    def test_default_table(self) -> None:
        table = load_route_table()

        assert set(table) == {"sepolia", "base", "polygon", "avalanche"}
        assert table["sepolia"].name == Network.ETHEREUM
        assert table["base"].chain_selector == "10344971235874465080"
        assert [r.domain_index for r in table.values()] == [0, 1, 2, 3]

    def test_domain_index_matches_network_order(self) -> None:
        for route in load_route_table().values():
            assert route.domain_index == route.name.index

    def test_raw_table_satisfies_contract(self, raw_table) -> None:
        validate_route_table(raw_table)

    def test_invalid_address_rejected(self, raw_table) -> None:
        table = deepcopy(raw_table)
        table["base"]["asset"] = "0x1234"
        with pytest.raises(ValidationError):
            parse_route_table(table)

    def test_missing_field_rejected(self, raw_table) -> None:
        table = deepcopy(raw_table)
        del table["polygon"]["price_feed"]
        with pytest.raises(ValidationError):
            parse_route_table(table)

    def test_duplicate_domain_rejected(self, raw_table) -> None:
        table = deepcopy(raw_table)
        table["base-copy"] = deepcopy(table["base"])
        with pytest.raises(ValueError, match="configured twice"):
            parse_route_table(table)

    def test_load_from_path(self, raw_table, tmp_path) -> None:
        path = tmp_path / "routes.json"
        path.write_text(json.dumps({"base": raw_table["base"]}), encoding="utf-8")

        table = load_route_table(path)
        assert list(table) == ["base"]
        assert table["base"].to_route().endpoint == raw_table["base"]["transport_endpoint"]


# =============================================================================
# ENGINE CONFIG
# =============================================================================


class TestEngineConfig:
    def test_from_route(self) -> None:
        route = load_route_table()["polygon"]
        config = EngineConfig.from_route(route, ledger_id="ledger-polygon", oracle_identity="0x0rac1e")

        assert config.local_domain == Network.POLYGON
        assert config.transport_endpoint == route.transport_endpoint
        assert config.price_feed == route.price_feed
        assert config.asset == route.asset

    def test_empty_oracle_rejected(self) -> None:
        route = load_route_table()["polygon"]
        with pytest.raises(PydanticValidationError):
            EngineConfig.from_route(route, ledger_id="ledger-polygon", oracle_identity="")

    def test_config_is_frozen(self) -> None:
        config = EngineConfig.from_route(load_route_table()["base"], "ledger-base", "0x0rac1e")
        with pytest.raises(PydanticValidationError):
            config.oracle_identity = "0xMallory"
