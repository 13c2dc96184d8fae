"""
Core math modules

Начисление дохода lending backend в Decimal арифметике.
"""

from src.core.math.yield_accrual import (
    INDEX_ONE,
    SECONDS_PER_YEAR,
    YIELD_RATE_FLOOR_EPS,
    YieldDomainViolation,
    accrue_index,
    amount_from_scaled,
    apy_from_rate,
    growth_factor,
    safe_yield_rate,
    scaled_from_amount,
)

__all__ = [
    "INDEX_ONE",
    "SECONDS_PER_YEAR",
    "YIELD_RATE_FLOOR_EPS",
    "YieldDomainViolation",
    "accrue_index",
    "amount_from_scaled",
    "apy_from_rate",
    "growth_factor",
    "safe_yield_rate",
    "scaled_from_amount",
]
