"""Domain models for the plan catalog."""

from packages.plans.models.domain.enums import BillingInterval
from packages.plans.models.domain.plan import (
    Plan,
    PlanCreateModel,
    PlanUpdateModel,
    PlanAddon,
    PlanAddonCreateModel,
    PlanAddonUpdateModel,
    PlanWithAddons,
    PlanStatistics,
    PlanComparison,
)

__all__ = [
    "BillingInterval",
    "Plan",
    "PlanCreateModel",
    "PlanUpdateModel",
    "PlanAddon",
    "PlanAddonCreateModel",
    "PlanAddonUpdateModel",
    "PlanWithAddons",
    "PlanStatistics",
    "PlanComparison",
]
