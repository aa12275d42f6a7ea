"""
Interface for customer notification channels.
"""

from abc import ABC, abstractmethod

from packages.billing.models.domain.invoice import Invoice


class NotificationProviderInterface(ABC):
    """Abstract interface for billing notifications."""

    @abstractmethod
    async def send_payment_reminder(self, invoice: Invoice) -> bool:
        """
        Remind the customer that an invoice is coming due.

        Args:
            invoice: The PENDING invoice

        Returns:
            True if the reminder was handed off
        """
        pass
