"""
Logging notification provider.

Used when no delivery channel is configured. Reminders are written to the
log with the invoice identifiers.
"""

from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.invoice import Invoice
from packages.billing.providers.notifications.interface import (
    NotificationProviderInterface,
)

logger = get_logger(__name__)


class LoggingNotificationProvider(NotificationProviderInterface):
    """Notification provider that only logs."""

    async def send_payment_reminder(self, invoice: Invoice) -> bool:
        logger.info(
            f"Payment reminder: invoice {invoice.invoice_number} for "
            f"{invoice.total} {invoice.currency} is due {invoice.due_date.date()}",
            extra={
                "tenant_id": invoice.tenant_id,
                "customer_id": invoice.customer_id,
                "invoice_id": invoice.id,
            },
        )
        return True
