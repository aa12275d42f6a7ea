"""
Factory for proration strategies.
"""

from typing import Dict, Optional, Type

from common.core.config import settings
from .base_strategy import NoProrationStrategy, ProrationStrategy


class ProrationStrategyFactory:
    """Factory for proration strategies keyed by name."""

    _strategies: Dict[str, Type[ProrationStrategy]] = {
        "none": NoProrationStrategy,
    }

    @classmethod
    def get_strategy(cls, name: Optional[str] = None) -> ProrationStrategy:
        """Get a strategy instance, defaulting to the configured one.

        Raises:
            ValueError: If no strategy is registered under the name
        """
        name = name or settings.proration_strategy
        strategy_class = cls._strategies.get(name)
        if not strategy_class:
            raise ValueError(f"No proration strategy registered as: {name}")
        return strategy_class()

    @classmethod
    def register_strategy(
        cls, name: str, strategy_class: Type[ProrationStrategy]
    ) -> None:
        """Register a strategy so it can be selected by name."""
        cls._strategies[name] = strategy_class
