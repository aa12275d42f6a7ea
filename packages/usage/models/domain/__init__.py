"""Domain models for usage metering."""

from packages.usage.models.domain.usage import (
    UsageRecord,
    UsageRecordCreateModel,
    UsageLimitStatus,
    UsageSummaryItem,
    UsageBucket,
)

__all__ = [
    "UsageRecord",
    "UsageRecordCreateModel",
    "UsageLimitStatus",
    "UsageSummaryItem",
    "UsageBucket",
]
