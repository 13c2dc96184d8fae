"""
JSON Schema Contract Validators

Проводные форматы, пересекающие границу домена, описаны формальными
JSON Schema (Draft 2020-12) в contracts/schema/:
- rebalance_message.json — межсетевое сообщение ребалансировки (amount в base units)
- route_table.json — статическая таблица маршрутов (config/routes.json)

Контракт проверяется до отправки сообщения и при загрузке конфигурации;
нарушение — jsonschema.ValidationError с наиболее релевантной ошибкой.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match


DEFAULT_SCHEMA_DIR = Path(__file__).resolve().parents[3] / "contracts" / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузка и meta-валидация схем из каталога контрактов.

    Схема читается с диска один раз; повторные запросы отдаются из кэша.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        self.schema_dir = Path(schema_dir) if schema_dir is not None else DEFAULT_SCHEMA_DIR
        if not self.schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self.schema_dir}")
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def available(self) -> Tuple[str, ...]:
        """Имена схем каталога (без расширения)."""
        return tuple(sorted(p.stem for p in self.schema_dir.glob("*.json")))

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Raises:
            FileNotFoundError: схемы с таким именем нет
            ValueError: файл не является корректной Draft 2020-12 схемой
        """
        cached = self._schemas.get(schema_name)
        if cached is not None:
            return cached

        schema_path = self.schema_dir / f"{schema_name}.json"
        if not schema_path.is_file():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_path.name}: {e.message}") from e

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка данных против одной схемы контракта."""

    schema_name: str = ""

    def __init__(self, loader: Optional[SchemaLoader] = None):
        if not self.schema_name:
            raise TypeError(f"{type(self).__name__} must define schema_name")
        self.schema = (loader or _SCHEMA_LOADER).load_schema(self.schema_name)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: наиболее релевантное нарушение схемы
        """
        error = best_match(self._validator.iter_errors(data))
        if error is not None:
            raise error

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def error_messages(self, data: Dict[str, Any]) -> List[str]:
        """Все нарушения в виде "path: message" (для логов)."""
        messages = []
        for error in self._validator.iter_errors(data):
            path = "/".join(str(part) for part in error.absolute_path) or "<root>"
            messages.append(f"{path}: {error.message}")
        return sorted(messages)


class RebalanceMessageValidator(ContractValidator):
    schema_name = "rebalance_message"


class RouteTableValidator(ContractValidator):
    schema_name = "route_table"


_VALIDATORS: Dict[type, ContractValidator] = {}


def _shared(validator_cls: type) -> ContractValidator:
    validator = _VALIDATORS.get(validator_cls)
    if validator is None:
        validator = _VALIDATORS[validator_cls] = validator_cls()
    return validator


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_rebalance_message(data: Dict[str, Any]) -> None:
    """Проверка сообщения ребалансировки в проводном формате."""
    _shared(RebalanceMessageValidator).validate(data)


def validate_route_table(data: Dict[str, Any]) -> None:
    """Проверка сырой таблицы маршрутов."""
    _shared(RouteTableValidator).validate(data)
