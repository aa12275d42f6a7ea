"""Services for usage metering."""

from packages.usage.services.usage_service import UsageService

__all__ = ["UsageService"]
