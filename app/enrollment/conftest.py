"""
Pytest fixtures shared by the enrollment, services and ledger tests.

Fixtures provide leads in the pipeline states the money paths care about,
and fixed operator contexts so every date bound is checked against the
same "today".

Usage:
    def test_refund_reverts_paid_full(paid_full_lead, admin_context):
        RefundService.create_direct_refund(paid_full_lead.id, request, admin_context)
"""

import datetime

import pytest
from django.utils import timezone

from enrollment.context import EnrollmentContext, EnrollmentSettings
from enrollment.state_machines import LeadStatus, OperatorRole
from enrollment.tests.factories import (
    LeadFactory,
    LeadPaymentFactory,
    OfferFactory,
    PlacementTestFactory,
)

TODAY = datetime.date(2026, 10, 18)


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def enrollment_settings():
    """Default business constants (3300 for the 3-level bundle, 100 test fee)."""
    return EnrollmentSettings()


@pytest.fixture
def admin_context(enrollment_settings):
    return EnrollmentContext(
        role=OperatorRole.ADMIN,
        today=TODAY,
        settings=enrollment_settings,
    )


@pytest.fixture
def moderator_context(enrollment_settings):
    return EnrollmentContext(
        role=OperatorRole.MODERATOR,
        today=TODAY,
        settings=enrollment_settings,
    )


# =============================================================================
# Lead State Fixtures
# =============================================================================


@pytest.fixture
def lead(db):
    """Create a new lead in lead_created."""
    return LeadFactory()


@pytest.fixture
def tested_lead(db):
    """Create a tested lead with level 3 assigned."""
    lead = LeadFactory(status=LeadStatus.TESTED)
    PlacementTestFactory(lead=lead, assigned_level=3)
    return lead


@pytest.fixture
def offer_sent_lead(db):
    """Create a lead with a 3300 offer and nothing paid."""
    lead = LeadFactory(status=LeadStatus.OFFER_SENT)
    PlacementTestFactory(lead=lead, assigned_level=3)
    OfferFactory(lead=lead, final_price=3300)
    return lead


@pytest.fixture
def paid_full_lead(db):
    """Create a lead with finalPrice=3300 and one 3300 course payment."""
    lead = LeadFactory(status=LeadStatus.PAID_FULL)
    PlacementTestFactory(lead=lead, assigned_level=3)
    OfferFactory(lead=lead, final_price=3300)
    LeadPaymentFactory(lead=lead, amount=3300)
    return lead


@pytest.fixture
def cancelled_lead(db):
    """Create a cancelled lead that never paid."""
    return LeadFactory(status=LeadStatus.CANCELLED, cancelled_at=timezone.now())
