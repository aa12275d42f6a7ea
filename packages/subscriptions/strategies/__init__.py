"""
Proration strategies for plan changes.
"""

from .base_strategy import ProrationStrategy, NoProrationStrategy
from .factory import ProrationStrategyFactory

__all__ = ["ProrationStrategy", "NoProrationStrategy", "ProrationStrategyFactory"]
