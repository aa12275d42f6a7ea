"""
Domain models for subscriptions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.plans.models.domain.enums import BillingInterval
from packages.subscriptions.models.domain.enums import PeriodStatus, SubscriptionStatus


def _enum_value(v):
    if isinstance(v, (SubscriptionStatus, PeriodStatus, BillingInterval)):
        return v.value
    return v


class Subscription(BaseModel):
    """
    Customer subscription domain model.

    Invariant: current_period_end > current_period_start.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    customer_id: int
    plan_id: Optional[int] = None

    status: SubscriptionStatus

    price: Decimal
    interval: BillingInterval
    interval_count: int = 1
    currency: str = "USD"

    current_period_start: datetime
    current_period_end: datetime
    next_billing_date: Optional[datetime] = None

    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    started_at: datetime
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancel_at_period_end: bool = False
    ended_at: Optional[datetime] = None

    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    resume_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_due(self, now: datetime) -> bool:
        """Check if the billing batch should bill this subscription at `now`."""
        return (
            self.status.is_billable()
            and self.next_billing_date is not None
            and self.next_billing_date <= now
        )


class SubscriptionCreateRequest(BaseModel):
    """Caller-facing request to subscribe a customer to a plan."""

    customer_id: int
    plan_id: int
    start_date: Optional[datetime] = None
    trial_days: Optional[int] = Field(default=None, ge=0)  # overrides plan default


class SubscriptionCreateModel(BaseModel):
    """Fully resolved row written on subscription creation."""

    tenant_id: int
    customer_id: int
    plan_id: int
    status: str
    price: Decimal
    interval: str
    interval_count: int
    currency: str
    current_period_start: datetime
    current_period_end: datetime
    next_billing_date: datetime
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    started_at: datetime
    created_at: Optional[datetime] = None

    @field_validator("status", "interval", mode="before")
    @classmethod
    def validate_enums(cls, v):
        return _enum_value(v)


class SubscriptionUpdateModel(BaseModel):
    """Partial update; explicitly set None values clear the column."""

    plan_id: Optional[int] = None
    status: Optional[str] = None

    price: Optional[Decimal] = None
    interval: Optional[str] = None
    interval_count: Optional[int] = None

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancel_at_period_end: Optional[bool] = None
    ended_at: Optional[datetime] = None

    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    resume_at: Optional[datetime] = None

    @field_validator("status", "interval", mode="before")
    @classmethod
    def validate_enums(cls, v):
        return _enum_value(v)


class SubscriptionAddon(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subscription_id: int
    addon_id: Optional[int] = None
    name: str
    price: Decimal
    interval: BillingInterval
    interval_count: int = 1
    quantity: int = 1
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool = True

    @property
    def amount(self) -> Decimal:
        return self.price * self.quantity


class SubscriptionAddonCreateModel(BaseModel):
    subscription_id: int
    addon_id: int
    name: str
    price: Decimal
    interval: str
    interval_count: int
    quantity: int
    start_date: datetime
    is_active: bool = True

    @field_validator("interval", mode="before")
    @classmethod
    def validate_interval(cls, v):
        return _enum_value(v)


class SubscriptionPeriod(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subscription_id: int
    start_date: datetime
    end_date: datetime
    amount: Decimal
    status: PeriodStatus
    invoice_id: Optional[int] = None
    paid_at: Optional[datetime] = None


class SubscriptionPeriodCreateModel(BaseModel):
    subscription_id: int
    start_date: datetime
    end_date: datetime
    amount: Decimal
    status: str = PeriodStatus.PENDING.value
    invoice_id: Optional[int] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return _enum_value(v)


class SubscriptionDetails(BaseModel):
    """Subscription with its active addons and most recent periods."""

    subscription: Subscription
    addons: List[SubscriptionAddon] = Field(default_factory=list)
    recent_periods: List[SubscriptionPeriod] = Field(default_factory=list)


class SubscriptionStatistics(BaseModel):
    """Tenant-wide subscription health."""

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    mrr: Decimal = Decimal("0")
    churn_rate: float = 0.0  # percent over the churn window


class PlanChangeResult(BaseModel):
    """Outcome of a plan change. proration_amount is set only by a strategy."""

    subscription: Subscription
    previous_plan_id: Optional[int] = None
    immediate: bool = False
    proration_amount: Optional[Decimal] = None
