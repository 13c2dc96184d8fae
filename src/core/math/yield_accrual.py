"""
Yield Accrual — начисление дохода через liquidity index

Модуль обеспечивает детерминированный рост стоимости депозита в lending
backend:
- Liquidity index: index(t) = index(t0) × exp(rate × Δt / year)
- Scaled balance: balance = scaled × index (депозит хранится в "масштабированных"
  единицах, рост стоимости — только через рост индекса)
- Конверсия непрерывной ставки в APY

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. rate ≤ -1 + YIELD_RATE_FLOOR_EPS → YieldDomainViolation (индекс не может обнулиться)
2. Индекс монотонно не убывает при rate ≥ 0
3. Вся арифметика в Decimal, результаты воспроизводимы

ФОРМУЛЫ:
    growth(Δt) = exp(rate × Δt / SECONDS_PER_YEAR)
    index_new = index_old × growth(Δt)
    APY = exp(rate) - 1
"""

from decimal import Decimal
from typing import Final

from src.core.domain.amounts import to_amount
from src.core.errors import EngineError

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

SECONDS_PER_YEAR: Final[int] = 365 * 24 * 60 * 60

# Начальное значение liquidity index
INDEX_ONE: Final[Decimal] = Decimal(1)

# Domain floor: rate должна быть > -1 + eps
YIELD_RATE_FLOOR_EPS: Final[Decimal] = Decimal("1e-6")


# =============================================================================
# EXCEPTIONS
# =============================================================================


class YieldDomainViolation(EngineError, ValueError):
    """
    Ставка вне допустимого домена: rate ≤ -1 + eps.

    Backend с такой ставкой не может быть учтён корректно — требуется
    ручное вмешательство.
    """

    pass


# =============================================================================
# ACCRUAL
# =============================================================================


def safe_yield_rate(rate: Decimal, eps: Decimal = YIELD_RATE_FLOOR_EPS) -> Decimal:
    """
    Проверка годовой ставки.

    Raises:
        YieldDomainViolation: если rate ≤ -1 + eps
    """
    rate = Decimal(rate)
    if not rate.is_finite():
        raise ValueError(f"Rate must be finite, got {rate}")
    if rate <= Decimal(-1) + eps:
        raise YieldDomainViolation(
            f"Yield domain violation: rate={rate} <= -1 + eps={eps}"
        )
    return rate


def growth_factor(annual_rate: Decimal, elapsed_seconds: int) -> Decimal:
    """
    Множитель роста за период.

    Examples:
        >>> growth_factor(Decimal("0.05"), 0)
        Decimal('1')
    """
    if elapsed_seconds < 0:
        raise ValueError(f"elapsed_seconds must be non-negative, got {elapsed_seconds}")
    rate = safe_yield_rate(annual_rate)
    if elapsed_seconds == 0 or rate == 0:
        return INDEX_ONE
    exponent = rate * Decimal(elapsed_seconds) / Decimal(SECONDS_PER_YEAR)
    return exponent.exp()


def accrue_index(index: Decimal, annual_rate: Decimal, elapsed_seconds: int) -> Decimal:
    """Новое значение liquidity index после Δt секунд."""
    if index <= 0:
        raise ValueError(f"index must be positive, got {index}")
    return index * growth_factor(annual_rate, elapsed_seconds)


def scaled_from_amount(amount: Decimal, index: Decimal) -> Decimal:
    """Сумма актива → масштабированный баланс при текущем индексе."""
    return Decimal(amount) / index


def amount_from_scaled(scaled: Decimal, index: Decimal) -> Decimal:
    """Масштабированный баланс → сумма актива (округление вниз до AMOUNT_QUANTUM)."""
    return to_amount(scaled * index)


def apy_from_rate(annual_rate: Decimal) -> Decimal:
    """APY для непрерывно начисляемой ставки: exp(rate) - 1."""
    rate = safe_yield_rate(annual_rate)
    return rate.exp() - 1
