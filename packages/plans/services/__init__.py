"""Plan catalog services."""

from packages.plans.services.plan_service import PlanService

__all__ = ["PlanService"]
