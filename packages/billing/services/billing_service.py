"""
Service for invoices and the recurring billing batches.

`bill_subscription` is the only code path that rolls a subscription into
its next period. The due-invoice batch and the trial conversion batch both
go through it, under the per-subscription lock.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.exceptions import ConflictError, NotFoundError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly
from common.db.scoped import transaction
from common.providers.events import publish_event
from common.providers.locking import get_lock_provider
from packages.billing.models.domain.enums import InvoiceStatus, LineItemType
from packages.billing.models.domain.invoice import (
    BillingStatistics,
    Invoice,
    InvoiceCreateModel,
    InvoiceLineItem,
    InvoiceUpdateModel,
)
from packages.billing.providers.notifications import get_notification_provider
from packages.billing.repositories.invoice_repository import InvoiceRepository
from packages.billing.repositories.invoice_sequence_repository import (
    InvoiceSequenceRepository,
)
from packages.plans.repositories.plan_repository import PlanRepository
from packages.plans.utils.periods import calculate_period_end
from packages.subscriptions.models.domain.enums import (
    PeriodStatus,
    SubscriptionStatus,
)
from packages.subscriptions.models.domain.subscription import (
    Subscription,
    SubscriptionPeriodCreateModel,
    SubscriptionUpdateModel,
)
from packages.subscriptions.repositories.subscription_repository import (
    SubscriptionRepository,
)
from packages.subscriptions.repositories.subscription_addon_repository import (
    SubscriptionAddonRepository,
)
from packages.subscriptions.repositories.subscription_period_repository import (
    SubscriptionPeriodRepository,
)

logger = get_logger(__name__)

CENT = Decimal("0.01")
DEFAULT_LINE_DESCRIPTION = "Subscription"


def format_invoice_number(issue_date: datetime, sequence: int) -> str:
    return f"INV-{issue_date.year}-{sequence:06d}"


def _invoice_payload(invoice: Invoice, **extra: Any) -> Dict[str, Any]:
    return {
        "tenant_id": invoice.tenant_id,
        "customer_id": invoice.customer_id,
        "subscription_id": invoice.subscription_id,
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "total": str(invoice.total),
        "currency": invoice.currency,
        "status": invoice.status.value,
        **extra,
    }


class BillingService:
    """Service for invoice generation, payment and the billing batches."""

    def __init__(self):
        self.invoice_repo = InvoiceRepository()
        self.sequence_repo = InvoiceSequenceRepository()
        self.subscription_repo = SubscriptionRepository()
        self.subscription_addon_repo = SubscriptionAddonRepository()
        self.period_repo = SubscriptionPeriodRepository()
        self.plan_repo = PlanRepository()

    async def _create_invoice(
        self,
        subscription: Subscription,
        period_start: datetime,
        period_end: datetime,
        issue_date: datetime,
    ) -> Invoice:
        """Price a period and write its invoice. Must run inside a transaction."""
        plan = (
            await self.plan_repo.get(subscription.plan_id)
            if subscription.plan_id is not None
            else None
        )
        addons = await self.subscription_addon_repo.list_active(subscription.id)

        line_items: List[InvoiceLineItem] = [
            InvoiceLineItem(
                type=LineItemType.SUBSCRIPTION,
                description=plan.name if plan else DEFAULT_LINE_DESCRIPTION,
                quantity=1,
                unit_price=subscription.price,
                amount=subscription.price,
                period_start=period_start,
                period_end=period_end,
            )
        ]
        for addon in addons:
            line_items.append(
                InvoiceLineItem(
                    type=LineItemType.ADDON,
                    description=addon.name,
                    quantity=addon.quantity,
                    unit_price=addon.price,
                    amount=addon.amount,
                    period_start=period_start,
                    period_end=period_end,
                )
            )

        subtotal = sum((item.amount for item in line_items), Decimal("0"))
        tax = (subtotal * settings.billing_tax_rate).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        sequence = await self.sequence_repo.next_value(subscription.tenant_id)

        return await self.invoice_repo.create(
            InvoiceCreateModel(
                tenant_id=subscription.tenant_id,
                subscription_id=subscription.id,
                customer_id=subscription.customer_id,
                invoice_number=format_invoice_number(issue_date, sequence),
                line_items=[item.model_dump(mode="json") for item in line_items],
                subtotal=subtotal,
                tax=tax,
                total=subtotal + tax,
                currency=subscription.currency,
                period_start=period_start,
                period_end=period_end,
                status=InvoiceStatus.PENDING,
                issue_date=issue_date,
                due_date=issue_date + timedelta(days=settings.invoice_due_days),
            )
        )

    @trace_span
    async def generate_invoice(
        self, subscription_id: int, now: Optional[datetime] = None
    ) -> Invoice:
        """
        Invoice the subscription's current period.

        The PENDING period opened for the current cycle is linked to the
        invoice and marked BILLED when its amount is the invoiced subscription
        price. A zero-amount trial period stays PENDING.

        Raises:
            NotFoundError: if the subscription does not exist.
        """
        now = now or utcnow()

        async with transaction():
            subscription = await self.subscription_repo.get(subscription_id)
            if not subscription:
                raise NotFoundError(f"Subscription {subscription_id} not found")

            invoice = await self._create_invoice(
                subscription,
                subscription.current_period_start,
                subscription.current_period_end,
                now,
            )
            period = await self.period_repo.get_pending_starting_at(
                subscription_id, subscription.current_period_start
            )
            if period and period.amount == subscription.price:
                await self.period_repo.mark_billed(period.id, invoice.id)

        logger.info(
            f"Generated invoice {invoice.invoice_number} for subscription "
            f"{subscription_id}",
            extra={
                "tenant_id": invoice.tenant_id,
                "subscription_id": subscription_id,
                "invoice_id": invoice.id,
                "total": str(invoice.total),
            },
        )
        await publish_event("invoice.created", _invoice_payload(invoice))
        return invoice

    @trace_span
    async def bill_subscription(
        self, subscription_id: int, now: Optional[datetime] = None
    ) -> Optional[Invoice]:
        """
        Roll a due subscription into its next period and invoice that period.

        A TRIAL subscription becomes ACTIVE here. Returns None when the
        subscription is locked elsewhere or is no longer due, so running a
        batch twice never bills the same period twice.
        """
        now = now or utcnow()

        async with get_lock_provider().hold(
            f"subscription:{subscription_id}", settings.subscription_lock_ttl_seconds
        ) as token:
            if token is None:
                logger.info(f"Subscription {subscription_id} is locked, skipping")
                return None

            async with transaction():
                subscription = await self.subscription_repo.get_for_update(
                    subscription_id
                )
                if not subscription or not subscription.is_due(now):
                    return None

                previous_status = subscription.status
                period_start = subscription.current_period_end
                period_end = calculate_period_end(
                    period_start, subscription.interval, subscription.interval_count
                )

                invoice = await self._create_invoice(
                    subscription, period_start, period_end, now
                )

                changes: Dict[str, Any] = {
                    "current_period_start": period_start,
                    "current_period_end": period_end,
                    "next_billing_date": period_end,
                }
                if previous_status == SubscriptionStatus.TRIAL:
                    changes["status"] = SubscriptionStatus.ACTIVE
                await self.subscription_repo.update(
                    subscription_id, SubscriptionUpdateModel(**changes)
                )

                await self.period_repo.create(
                    SubscriptionPeriodCreateModel(
                        subscription_id=subscription_id,
                        start_date=period_start,
                        end_date=period_end,
                        amount=subscription.price,
                        status=PeriodStatus.BILLED,
                        invoice_id=invoice.id,
                    )
                )

        logger.info(
            f"Billed subscription {subscription_id}: invoice "
            f"{invoice.invoice_number}, next billing {period_end.isoformat()}",
            extra={
                "tenant_id": subscription.tenant_id,
                "subscription_id": subscription_id,
                "invoice_id": invoice.id,
                "converted_trial": previous_status == SubscriptionStatus.TRIAL,
            },
        )
        await publish_event("invoice.created", _invoice_payload(invoice))
        return invoice

    async def _bill_each(
        self, candidates: List[Subscription], now: datetime, batch: str
    ) -> int:
        billed = 0
        for subscription in candidates:
            try:
                if await self.bill_subscription(subscription.id, now):
                    billed += 1
            except Exception as e:
                logger.error(
                    f"{batch}: failed to bill subscription {subscription.id}: {e}",
                    exc_info=True,
                )
        logger.info(f"{batch}: billed {billed} of {len(candidates)} subscription(s)")
        return billed

    @trace_span
    async def process_due_invoices(self, now: Optional[datetime] = None) -> int:
        """
        Bill every TRIAL or ACTIVE subscription whose next billing date has
        arrived, across all tenants.

        Returns:
            Number of subscriptions billed
        """
        now = now or utcnow()
        candidates = await self.subscription_repo.list_due_for_billing(now)
        return await self._bill_each(candidates, now, "process_due_invoices")

    @trace_span
    async def convert_expired_trials(self, now: Optional[datetime] = None) -> int:
        """Convert ended trials to ACTIVE and issue their first invoice."""
        now = now or utcnow()
        candidates = await self.subscription_repo.list_expired_trials(now)
        return await self._bill_each(candidates, now, "convert_expired_trials")

    @trace_span
    async def get_invoice(self, invoice_id: int, tenant_id: int) -> Invoice:
        invoice = await self.invoice_repo.get(invoice_id, tenant_id=tenant_id)
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    @trace_span
    async def get_customer_invoices(
        self, customer_id: int, tenant_id: int
    ) -> List[Invoice]:
        return await self.invoice_repo.list_by_customer(customer_id, tenant_id)

    @trace_span
    async def process_payment(
        self,
        invoice_id: int,
        tenant_id: int,
        payment_method: str,
        transaction_id: str,
        now: Optional[datetime] = None,
    ) -> Invoice:
        """
        Record a successful payment.

        The invoice's periods become PAID and a PAST_DUE subscription returns
        to ACTIVE.

        Raises:
            NotFoundError: if the invoice does not exist for the tenant.
            ConflictError: if the invoice is already paid.
        """
        now = now or utcnow()

        async with transaction():
            invoice = await self.get_invoice(invoice_id, tenant_id)
            if invoice.status == InvoiceStatus.PAID:
                raise ConflictError(f"Invoice {invoice_id} is already paid")

            invoice = await self.invoice_repo.update(
                invoice_id,
                InvoiceUpdateModel(
                    status=InvoiceStatus.PAID,
                    paid_at=now,
                    payment_method=payment_method,
                    transaction_id=transaction_id,
                ),
            )
            await self.period_repo.mark_paid_by_invoice(invoice_id, now)

            subscription = await self.subscription_repo.get_for_update(
                invoice.subscription_id
            )
            if subscription and subscription.status == SubscriptionStatus.PAST_DUE:
                await self.subscription_repo.update(
                    subscription.id,
                    SubscriptionUpdateModel(status=SubscriptionStatus.ACTIVE),
                )
                logger.info(
                    f"Subscription {subscription.id} restored to active by payment"
                )

        logger.info(
            f"Invoice {invoice.invoice_number} paid",
            extra={
                "tenant_id": tenant_id,
                "invoice_id": invoice_id,
                "payment_method": payment_method,
            },
        )
        await publish_event(
            "invoice.paid",
            _invoice_payload(invoice, transaction_id=transaction_id),
        )
        return invoice

    @trace_span
    async def mark_invoice_failed(
        self, invoice_id: int, tenant_id: Optional[int] = None
    ) -> Invoice:
        """
        Mark an invoice as failed and move its subscription to PAST_DUE.

        Only ACTIVE and TRIAL subscriptions are moved; cancelled, paused and
        expired ones keep their status.

        Raises:
            NotFoundError: if the invoice does not exist.
            ConflictError: if the invoice is already paid.
        """
        async with transaction():
            invoice = await self.invoice_repo.get(invoice_id, tenant_id=tenant_id)
            if not invoice:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            if invoice.status == InvoiceStatus.PAID:
                raise ConflictError(f"Invoice {invoice_id} is already paid")

            invoice = await self.invoice_repo.update(
                invoice_id, InvoiceUpdateModel(status=InvoiceStatus.FAILED)
            )

            subscription = await self.subscription_repo.get_for_update(
                invoice.subscription_id
            )
            if subscription and subscription.status in (
                SubscriptionStatus.ACTIVE,
                SubscriptionStatus.TRIAL,
            ):
                await self.subscription_repo.update(
                    subscription.id,
                    SubscriptionUpdateModel(status=SubscriptionStatus.PAST_DUE),
                )

        logger.warning(
            f"Invoice {invoice.invoice_number} failed",
            extra={"tenant_id": invoice.tenant_id, "invoice_id": invoice_id},
        )
        await publish_event("invoice.failed", _invoice_payload(invoice))
        return invoice

    @trace_span
    async def mark_overdue_invoices(self, now: Optional[datetime] = None) -> int:
        """
        Fail PENDING invoices still unpaid past the grace period.

        Returns:
            Number of invoices marked failed
        """
        now = now or utcnow()
        cutoff = now - timedelta(days=settings.past_due_grace_days)
        lock_provider = get_lock_provider()
        failed = 0

        candidates = await self.invoice_repo.list_pending_due_on_or_before(cutoff)
        for candidate in candidates:
            try:
                async with lock_provider.hold(
                    f"invoice:{candidate.id}", settings.subscription_lock_ttl_seconds
                ) as token:
                    if token is None:
                        logger.info(f"Invoice {candidate.id} is locked, skipping")
                        continue
                    current = await self.invoice_repo.get(candidate.id)
                    if not current or current.status != InvoiceStatus.PENDING:
                        continue
                    await self.mark_invoice_failed(candidate.id)
                    failed += 1
            except Exception as e:
                logger.error(
                    f"Failed to mark invoice {candidate.id} overdue: {e}",
                    exc_info=True,
                )

        logger.info(f"Marked {failed} overdue invoice(s) as failed")
        return failed

    @trace_span
    async def send_payment_reminders(self, now: Optional[datetime] = None) -> int:
        """
        Remind customers of PENDING invoices due on the calendar day
        `payment_reminder_days` from now.

        Returns:
            Number of reminders handed to the notification provider
        """
        now = now or utcnow()
        target = (now + timedelta(days=settings.payment_reminder_days)).date()
        day_start = datetime(target.year, target.month, target.day)
        invoices = await self.invoice_repo.list_pending_due_between(
            day_start, day_start + timedelta(days=1)
        )

        provider = get_notification_provider()
        sent = 0
        for invoice in invoices:
            try:
                if await provider.send_payment_reminder(invoice):
                    sent += 1
            except Exception as e:
                logger.error(
                    f"Failed to send reminder for invoice {invoice.id}: {e}",
                    exc_info=True,
                )

        logger.info(f"Sent {sent} payment reminder(s) for invoices due {target}")
        return sent

    @trace_span
    @readonly
    async def get_billing_statistics(
        self,
        tenant_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> BillingStatistics:
        """Invoice counts and amounts for a tenant, filtered by issue date."""
        totals = await self.invoice_repo.totals_by_status(tenant_id, start, end)

        total = sum(count for count, _ in totals.values())
        paid, revenue = totals.get(InvoiceStatus.PAID.value, (0, Decimal("0")))
        _, pending_amount = totals.get(
            InvoiceStatus.PENDING.value, (0, Decimal("0"))
        )

        return BillingStatistics(
            total_invoices=total,
            paid_invoices=paid,
            failed_invoices=total - paid,
            total_revenue=revenue.quantize(CENT),
            pending_amount=pending_amount.quantize(CENT),
            collection_rate=(paid / total * 100) if total else 0.0,
        )
