"""
Core: domain models, fixed-point amounts, errors, contracts and configuration.

Ничего из core не зависит от ledger, стратегий или транспорта.
"""
