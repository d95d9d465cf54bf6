"""
State and choice enums for enrollment models.

This module defines the lead status enum driven by django-fsm, the stage
ranking used for upgrade-only decisions, and the other TextChoices stored
on enrollment and ledger rows.

State Machine Overview:

Lead Status:
    lead_created → test_booked → tested → offer_sent
        → deposit_paid | paid_full → schedule_assigned → ready_to_start
    any non-cancelled → waiting_for_round
    any non-cancelled → cancelled → lead_created (reopen)
    paid_full → offer_sent (refund drops the net paid below the final price)
    paused is reserved and never entered by a transition
"""

from dataclasses import dataclass

from django.db import models


class LeadStatus(models.TextChoices):
    """
    Statuses for the Lead lifecycle.

    Pipeline statuses carry a rank (see STAGE_RANK). WAITING_FOR_ROUND
    ranks with SCHEDULE_ASSIGNED. CANCELLED and PAUSED are side-states the
    stage classifier never moves a lead out of.
    """

    LEAD_CREATED = "lead_created", "New Lead"
    TEST_BOOKED = "test_booked", "Test Booked"
    TESTED = "tested", "Tested"
    OFFER_SENT = "offer_sent", "Offer Sent"
    DEPOSIT_PAID = "deposit_paid", "Deposit Paid"
    PAID_FULL = "paid_full", "Paid in Full"
    SCHEDULE_ASSIGNED = "schedule_assigned", "Schedule Assigned"
    READY_TO_START = "ready_to_start", "Ready to Start"
    WAITING_FOR_ROUND = "waiting_for_round", "Waiting for Round"
    PAUSED = "paused", "Paused"
    CANCELLED = "cancelled", "Cancelled"


# Ordered pipeline position. Upgrades move to a strictly higher rank.
STAGE_RANK = {
    LeadStatus.LEAD_CREATED: 0,
    LeadStatus.TEST_BOOKED: 1,
    LeadStatus.TESTED: 2,
    LeadStatus.OFFER_SENT: 3,
    LeadStatus.DEPOSIT_PAID: 4,
    LeadStatus.PAID_FULL: 5,
    LeadStatus.SCHEDULE_ASSIGNED: 6,
    LeadStatus.WAITING_FOR_ROUND: 6,
    LeadStatus.READY_TO_START: 7,
}

ACTIVE_STATUSES = [s for s in LeadStatus.values if s != LeadStatus.CANCELLED]


def stage_rank(status: str) -> int | None:
    """Return the pipeline rank of ``status``, or None for side-states."""
    return STAGE_RANK.get(status)


@dataclass(frozen=True)
class StatusDisplay:
    """Badge metadata rendered next to a lead's status."""

    label: str
    color: str
    next_action: str


STATUS_DISPLAY = {
    LeadStatus.LEAD_CREATED: StatusDisplay("New Lead", "grey", "Book placement test"),
    LeadStatus.TEST_BOOKED: StatusDisplay("Test Booked", "orange", "Run placement test"),
    LeadStatus.TESTED: StatusDisplay("Tested", "blue", "Send offer"),
    LeadStatus.OFFER_SENT: StatusDisplay("Offer Sent", "blue", "Wait for booking"),
    LeadStatus.DEPOSIT_PAID: StatusDisplay("Deposit Paid", "orange", "Collect remaining"),
    LeadStatus.PAID_FULL: StatusDisplay("Paid in Full", "green", "Assign schedule"),
    LeadStatus.SCHEDULE_ASSIGNED: StatusDisplay(
        "Schedule Assigned", "blue", "Mark ready to start"
    ),
    LeadStatus.READY_TO_START: StatusDisplay("Ready to Start", "green", "Ready for activation"),
    LeadStatus.WAITING_FOR_ROUND: StatusDisplay("Waiting for Round", "red", "Mark ready to start"),
    LeadStatus.PAUSED: StatusDisplay("Paused", "grey", "Review"),
    LeadStatus.CANCELLED: StatusDisplay("Cancelled", "grey", "Review"),
}


def status_display(status: str) -> StatusDisplay:
    """Return display metadata, falling back to the raw status value."""
    return STATUS_DISPLAY.get(status, StatusDisplay(status, "grey", "Review"))


class LeadSource(models.TextChoices):
    """Where a lead came from. Unknown values degrade to OTHER."""

    FACEBOOK = "Facebook", "Facebook"
    WHATSAPP = "WhatsApp", "WhatsApp"
    INSTAGRAM = "Instagram", "Instagram"
    ADMIN = "Admin", "Admin"
    REFERRAL = "Referral", "Referral"
    WALK_IN = "Walk-in", "Walk-in"
    OTHER = "Other", "Other"


class PlacementTestType(models.TextChoices):
    """Placement test delivery format."""

    IN_PERSON = "in_person", "In Person"
    ONLINE = "online", "Online"


class DiscountType(models.TextChoices):
    """How an offer discount is applied to the base price."""

    AMOUNT = "amount", "Amount"
    PERCENT = "percent", "Percent"


class BundleType(models.TextChoices):
    """Credit bundle recorded on the lead once course money arrives."""

    NONE = "none", "None"
    SINGLE = "single", "Single Level"
    BUNDLE2 = "bundle2", "2-Level Bundle"
    BUNDLE3 = "bundle3", "3-Level Bundle"
    BUNDLE4 = "bundle4", "4-Level Bundle"


class CoursePaymentKind(models.TextChoices):
    """Kinds of course payment. COURSE is the generic legacy kind."""

    COURSE = "course", "Course"
    DEPOSIT = "deposit", "Deposit"
    FULL_PAYMENT = "full_payment", "Full Payment"
    TOP_UP = "top_up", "Top-up"


class PaymentMethod(models.TextChoices):
    """Manually recorded payment methods."""

    CASH = "cash", "Cash"
    VODAFONE_CASH = "vodafone_cash", "Vodafone Cash"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"
    PAYPAL = "paypal", "PayPal"
    OTHER = "other", "Other"


class TransactionType(models.TextChoices):
    """Direction of a ledger transaction."""

    IN = "IN", "In"
    OUT = "OUT", "Out"


class TransactionCategory(models.TextChoices):
    """
    Ledger categories.

    PLACEMENT_TEST and COURSE_PAYMENT are lead income; REFUND is the only
    lead-linked outflow. The remaining values are generic expenses.
    """

    PLACEMENT_TEST = "placement_test", "Placement Test"
    COURSE_PAYMENT = "course_payment", "Course Payment"
    REFUND = "refund", "Refund"
    TEACHER_SALARY = "teacher_salary", "Teacher Salary"
    ADS = "ads", "Ads"
    RENT = "rent", "Rent"
    SOFTWARE = "software", "Software"
    MODERATOR = "moderator", "Moderator"
    CONTENT_CREATOR = "content_creator", "Content Creator"
    OTHER = "other", "Other"


EXPENSE_CATEGORIES = frozenset(
    {
        TransactionCategory.TEACHER_SALARY,
        TransactionCategory.ADS,
        TransactionCategory.RENT,
        TransactionCategory.SOFTWARE,
        TransactionCategory.MODERATOR,
        TransactionCategory.CONTENT_CREATOR,
        TransactionCategory.OTHER,
    }
)


class OperatorRole(models.TextChoices):
    """Role of the staff member acting on a lead."""

    ADMIN = "admin", "Admin"
    MODERATOR = "moderator", "Moderator"
