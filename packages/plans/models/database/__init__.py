"""Database models for the plan catalog."""

from packages.plans.models.database.plan import PlanEntity, PlanAddonEntity

__all__ = [
    "PlanEntity",
    "PlanAddonEntity",
]
