"""
Unit tests for InvoiceSequenceRepository.
"""

import pytest

from packages.billing.repositories.invoice_sequence_repository import (
    InvoiceSequenceRepository,
)


@pytest.mark.asyncio
class TestInvoiceSequenceRepository:
    """Tests for InvoiceSequenceRepository."""

    async def test_first_value_is_one(self, test_db):
        repo = InvoiceSequenceRepository(test_db)

        assert await repo.next_value(1) == 1

    async def test_values_increase(self, test_db):
        repo = InvoiceSequenceRepository(test_db)

        values = [await repo.next_value(1) for _ in range(3)]

        assert values == [1, 2, 3]

    async def test_tenants_have_separate_sequences(self, test_db):
        repo = InvoiceSequenceRepository(test_db)

        await repo.next_value(1)
        await repo.next_value(1)

        assert await repo.next_value(2) == 1
        assert await repo.next_value(1) == 3
