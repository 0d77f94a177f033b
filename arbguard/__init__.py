"""
ArbGuard - Cross-source arbitrage opportunity validation.

Validates three-source price snapshots through a chain of fixed-point
safety checks, tracks how long each divergence persists, and keeps an
append-only ledger of accepted opportunities.
"""

__version__ = "0.1.0"
