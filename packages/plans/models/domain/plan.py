"""
Domain models for the plan catalog.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.plans.models.domain.enums import BillingInterval


def _enum_value(v):
    if isinstance(v, BillingInterval):
        return v.value
    return v


class Plan(BaseModel):
    """
    Tenant-defined recurring offering.

    Limits left as None are not enforced and are omitted from limit checks.
    custom_limits maps a usage metric name to its numeric threshold.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    name: str
    description: Optional[str] = None

    price: Decimal
    interval: BillingInterval
    interval_count: int = 1
    currency: str = "USD"
    trial_days: int = 0
    setup_fee: Decimal = Decimal("0")

    features: List[str] = Field(default_factory=list)
    max_users: Optional[int] = None
    max_products: Optional[int] = None
    max_storage: Optional[int] = None
    custom_limits: Dict[str, Any] = Field(default_factory=dict)

    is_active: bool = True
    display_order: int = 0
    is_popular: bool = False
    badge: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlanCreateModel(BaseModel):
    """Model for creating a plan. tenant_id is supplied by the caller."""

    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    interval: str = BillingInterval.MONTHLY.value
    interval_count: int = 1
    currency: str = "USD"
    trial_days: int = Field(default=0, ge=0)
    setup_fee: Decimal = Field(default=Decimal("0"), ge=0)
    features: List[str] = Field(default_factory=list)
    max_users: Optional[int] = None
    max_products: Optional[int] = None
    max_storage: Optional[int] = None
    custom_limits: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    display_order: int = 0
    is_popular: bool = False
    badge: Optional[str] = None

    @field_validator("interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        return _enum_value(v)


class PlanUpdateModel(BaseModel):
    """Partial plan update. Existing subscriptions keep their snapshotted price."""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    interval: Optional[str] = None
    interval_count: Optional[int] = None
    currency: Optional[str] = None
    trial_days: Optional[int] = Field(default=None, ge=0)
    setup_fee: Optional[Decimal] = Field(default=None, ge=0)
    features: Optional[List[str]] = None
    max_users: Optional[int] = None
    max_products: Optional[int] = None
    max_storage: Optional[int] = None
    custom_limits: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None
    is_popular: Optional[bool] = None
    badge: Optional[str] = None

    @field_validator("interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        return _enum_value(v)


class PlanAddon(BaseModel):
    """Supplementary recurring charge offered under one plan."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    interval: BillingInterval
    interval_count: int = 1
    quantity: Optional[int] = None  # fixed quantity, if the addon has one
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlanAddonCreateModel(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    interval: str = BillingInterval.MONTHLY.value
    interval_count: int = 1
    quantity: Optional[int] = None
    is_active: bool = True

    @field_validator("interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        return _enum_value(v)


class PlanAddonUpdateModel(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    interval: Optional[str] = None
    interval_count: Optional[int] = None
    quantity: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        return _enum_value(v)


class PlanWithAddons(BaseModel):
    plan: Plan
    addons: List[PlanAddon] = Field(default_factory=list)


class PlanStatistics(BaseModel):
    """Subscription counts and revenue attributable to one plan."""

    plan_id: int
    total_subscriptions: int = 0
    active_subscriptions: int = 0
    trial_subscriptions: int = 0
    paused_subscriptions: int = 0
    past_due_subscriptions: int = 0
    cancelled_subscriptions: int = 0  # cancelled + expired
    mrr: Decimal = Decimal("0")
    conversion_rate: float = 0.0  # active / total, percent


class PlanComparison(BaseModel):
    current_plan: Plan
    new_plan: Plan
    price_difference: Decimal
    percentage_change: float
    is_upgrade: bool
    is_downgrade: bool
