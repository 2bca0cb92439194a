"""
Core ledger algorithms
"""

from .oracle import PricingSnapshot, is_confident, is_fresh

__all__ = [
    "PricingSnapshot",
    "is_confident",
    "is_fresh",
]
