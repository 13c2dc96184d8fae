"""
Test suite for linkyield-engine

Contains:
- tests/unit/ : unit and two-domain scenario tests (pytest)
"""
