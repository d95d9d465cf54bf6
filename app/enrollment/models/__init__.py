"""
Enrollment domain models.

This module contains all enrollment models:
- Lead: The prospective student and its FSM status
- PlacementTest: Test booking, result and fee
- Offer: Bundle and pricing
- Scheduling: Round and class slot
- LeadPayment: Append-only course payments
- LedgerTransaction: Money record (re-exported from the ledger so Django
  discovers it)
"""

from enrollment.ledger.models import LedgerTransaction
from enrollment.models.lead import Lead
from enrollment.models.lead_payment import LeadPayment
from enrollment.models.offer import Offer
from enrollment.models.placement_test import PlacementTest
from enrollment.models.scheduling import Scheduling

__all__ = [
    "Lead",
    "LeadPayment",
    "LedgerTransaction",
    "Offer",
    "PlacementTest",
    "Scheduling",
]
