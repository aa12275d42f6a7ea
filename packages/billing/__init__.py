"""
Billing package - invoice generation, payment and failure handling, and the
recurring batches that roll subscriptions into their next period.

This package integrates with:
- Event publisher: invoice.created / invoice.paid / invoice.failed
- Notification provider: payment reminders
"""
