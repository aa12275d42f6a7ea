"""Database models for usage metering."""

from packages.usage.models.database.usage import UsageRecordEntity

__all__ = ["UsageRecordEntity"]
