"""
Pytest fixtures for ledger tests.

Sections:
    - Params Fixtures: Pre-built RecordTransactionParams
"""

import pytest

from enrollment.ledger.types import RecordTransactionParams, RefKeys
from enrollment.state_machines import PaymentMethod, TransactionCategory, TransactionType


# ==========================================================================
# Params Fixtures
# ==========================================================================


@pytest.fixture
def placement_params(lead, today):
    """Placement test income of 100 for ``lead``, keyed per lead."""
    return RecordTransactionParams.for_lead(
        lead.id,
        TransactionType.IN,
        TransactionCategory.PLACEMENT_TEST,
        100,
        today,
        ref_key=RefKeys.placement_test(lead.id),
        payment_method=PaymentMethod.CASH,
    )


@pytest.fixture
def expense_params(db, today):
    """Unkeyed rent expense of 2000."""
    return RecordTransactionParams(
        transaction_type=TransactionType.OUT,
        category=TransactionCategory.RENT,
        amount=2000,
        transaction_date=today,
        payment_method=PaymentMethod.BANK_TRANSFER,
        notes="October rent",
    )
