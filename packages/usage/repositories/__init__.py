"""Repositories for usage metering."""

from packages.usage.repositories.usage_repository import UsageRepository

__all__ = ["UsageRepository"]
