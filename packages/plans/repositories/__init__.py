"""Plan catalog repositories."""

from packages.plans.repositories.plan_repository import (
    PlanRepository,
    PlanAddonRepository,
)

__all__ = [
    "PlanRepository",
    "PlanAddonRepository",
]
