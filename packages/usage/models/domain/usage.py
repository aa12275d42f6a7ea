"""
Domain models for usage metering.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict


class UsageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    subscription_id: int
    metric: str
    quantity: int
    record_date: datetime
    record_metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class UsageRecordCreateModel(BaseModel):
    tenant_id: int
    subscription_id: int
    metric: str
    quantity: int
    record_date: datetime
    record_metadata: Optional[Dict[str, Any]] = None


class UsageLimitStatus(BaseModel):
    """Usage of one limited metric within the current billing period."""

    limit: float
    current: float
    remaining: float
    percentage: float
    exceeded: bool


class UsageSummaryItem(BaseModel):
    metric: str
    total_quantity: int
    record_count: int


class UsageBucket(BaseModel):
    """Usage total for one day, week (starting Sunday) or month."""

    date: str
    quantity: int
