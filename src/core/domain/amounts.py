"""
Amounts — Fixed-point единицы актива и health factor

Единственный допустимый способ преобразований между:
- amount (Decimal, единицы актива с ASSET_DECIMALS знаками)
- base units (int, минимальные единицы актива, как uint256 в токене)
- health factor (Decimal, безразмерный, HEALTH_FACTOR_DECIMALS знаков)

float на входе допускается только через str() — без двоичных артефактов.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Final, Optional, Union

from src.core.errors import InvalidAmount, InvalidHealthFactor


# =============================================================================
# ПАРАМЕТРЫ ТОЧНОСТИ
# =============================================================================

# Десятичные знаки актива (USDC)
ASSET_DECIMALS: Final[int] = 6
AMOUNT_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-ASSET_DECIMALS)

# Десятичные знаки health factor (1e18 = 1.0)
HEALTH_FACTOR_DECIMALS: Final[int] = 18
HEALTH_FACTOR_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-HEALTH_FACTOR_DECIMALS)

# Десятичные знаки price feed (USDC/USD, 8 знаков)
PRICE_FEED_DECIMALS: Final[int] = 8

# Порог ребалансировки: health factor строго ниже → needs_rebalance
REBALANCE_THRESHOLD: Final[Decimal] = Decimal("1.1")

ZERO: Final[Decimal] = Decimal(0)

Numeric = Union[Decimal, int, str, float]


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def _to_decimal(value: Numeric) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"Not a decimal number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def to_amount(value: Numeric) -> Decimal:
    """
    Приведение к fixed-point сумме актива.

    Округление вниз до AMOUNT_QUANTUM (как целочисленное деление в токене).

    Raises:
        InvalidAmount: если значение не число или не конечно
    """
    try:
        amount = _to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidAmount(str(e)) from e
    return amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)


def to_health_factor(value: Numeric) -> Decimal:
    """
    Приведение к fixed-point health factor.

    Единственная проверка диапазона — неотрицательность (oracle доверенный).

    Raises:
        InvalidHealthFactor: если значение отрицательное, не число или не конечно
    """
    try:
        hf = _to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidHealthFactor(str(e)) from e
    if hf < 0:
        raise InvalidHealthFactor(f"Health factor cannot be negative: {value!r}")
    return hf.quantize(HEALTH_FACTOR_QUANTUM, rounding=ROUND_DOWN)


def to_base_units(amount: Decimal) -> int:
    """Decimal сумма → целые минимальные единицы (1.5 USDC → 1_500_000)."""
    return int(to_amount(amount).scaleb(ASSET_DECIMALS))


def from_base_units(units: int) -> Decimal:
    """Целые минимальные единицы → Decimal сумма (1_500_000 → 1.5 USDC)."""
    return to_amount(Decimal(units).scaleb(-ASSET_DECIMALS))


def health_factor_from_wad(wad: int) -> Decimal:
    """Health factor в формате 1e18 (как отдаёт oracle) → Decimal."""
    return to_health_factor(Decimal(wad).scaleb(-HEALTH_FACTOR_DECIMALS))


# =============================================================================
# ПРЕДИКАТЫ И ВАЛИДАЦИЯ
# =============================================================================


def below_rebalance_threshold(
    health_factor: Optional[Decimal],
    threshold: Decimal = REBALANCE_THRESHOLD,
) -> bool:
    """
    Требуется ли ребалансировка.

    Строгое сравнение: health_factor == threshold → False.
    None (нет показаний oracle) → False.
    """
    if health_factor is None:
        return False
    return health_factor < threshold


def validate_positive_amount(amount: Numeric) -> Decimal:
    """
    Проверка суммы операции.

    Сумма операции принимается только точно представимой в ASSET_DECIMALS
    знаках: округление здесь не выполняется (ROUND_DOWN в to_amount — только
    для внутренних конверсий).

    Returns:
        Нормализованная сумма > 0

    Raises:
        InvalidAmount: сумма не число, не помещается в 6 знаков или <= 0
    """
    normalized = to_amount(amount)
    if normalized != _to_decimal(amount):
        raise InvalidAmount(
            f"Amount exceeds {ASSET_DECIMALS}-decimal precision, got {amount!r}"
        )
    if normalized <= 0:
        raise InvalidAmount(f"Amount must be greater than 0, got {amount!r}")
    return normalized
