"""
Lead model - the prospective student moving through the enrollment pipeline.

A Lead is created on intake and never hard-deleted; cancellation is a
soft, reopenable state. Its status is a django-fsm field whose transitions
encode the pipeline order. Money-driven decisions (deposit, paid in full,
the refund regression) are made by services that consult the payment
aggregator before calling the matching transition.

Usage:
    from enrollment.models import Lead

    lead = Lead.objects.create(full_name="Mona Adel", phone="01000000000")
    lead.book_test()
    lead.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django_fsm import RETURN_VALUE, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from enrollment.state_machines import (
    STAGE_RANK,
    BundleType,
    LeadSource,
    LeadStatus,
    stage_rank,
    status_display,
)

PIPELINE_STATUSES = list(STAGE_RANK)
NON_CANCELLED_STATUSES = [s for s in LeadStatus.values if s != LeadStatus.CANCELLED]


class Lead(UUIDPrimaryKeyMixin, BaseModel):
    """
    A prospective or enrolled student.

    State Flow:
        LEAD_CREATED -> TEST_BOOKED -> TESTED -> OFFER_SENT
        OFFER_SENT -> DEPOSIT_PAID | PAID_FULL
        PAID_FULL -> OFFER_SENT (refund drops the net paid below the final price)
        ... -> SCHEDULE_ASSIGNED -> READY_TO_START
        any non-cancelled -> WAITING_FOR_ROUND
        any non-cancelled -> CANCELLED -> LEAD_CREATED (reopen)

    Fields:
        full_name: Student name
        phone: Unique contact phone, used for duplicate detection on intake
        source: Acquisition channel
        notes: Free-text operator notes
        status: Current FSM status
        levels_purchased_total: Level credits bought with the course bundle
        levels_consumed: Level credits already used
        bundle_type: Bundle recorded once course money arrives
        high_priority_follow_up: Flag for leads needing urgent follow-up
        sent_to_classes: Whether the lead was handed off to the classes board
        sent_to_classes_at: When the hand-off happened
        cancelled_at: Set exactly when status is CANCELLED
        created_by: Operator who created the lead
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    full_name = models.CharField(
        max_length=255,
        help_text="Full name of the prospective student",
    )
    phone = models.CharField(
        max_length=32,
        unique=True,
        help_text="Contact phone number (unique across leads)",
    )
    source = models.CharField(
        max_length=32,
        choices=LeadSource.choices,
        default=LeadSource.OTHER,
        help_text="Channel the lead came from",
    )
    notes = models.TextField(
        blank=True,
        default="",
        help_text="Free-text operator notes",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=LeadStatus.LEAD_CREATED,
        choices=LeadStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current pipeline status of the lead (managed by FSM)",
    )
    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the lead was cancelled (set only while cancelled)",
    )

    # ==========================================================================
    # Level Credits
    # ==========================================================================

    levels_purchased_total = models.PositiveIntegerField(
        default=0,
        help_text="Number of level credits purchased",
    )
    levels_consumed = models.PositiveIntegerField(
        default=0,
        help_text="Number of level credits already used",
    )
    bundle_type = models.CharField(
        max_length=16,
        choices=BundleType.choices,
        default=BundleType.NONE,
        help_text="Bundle purchased with the course payment",
    )

    # ==========================================================================
    # Hand-off & Follow-up
    # ==========================================================================

    high_priority_follow_up = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the lead needs urgent follow-up",
    )
    sent_to_classes = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the lead was sent to the classes board",
    )
    sent_to_classes_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the lead was sent to the classes board",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_leads",
        help_text="Operator who created the lead",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Lead"
        verbose_name_plural = "Leads"
        indexes = [
            models.Index(fields=["status", "created_at"], name="lead_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status=LeadStatus.CANCELLED, cancelled_at__isnull=False)
                    | (~Q(status=LeadStatus.CANCELLED) & Q(cancelled_at__isnull=True))
                ),
                name="lead_cancelled_at_matches_status",
            ),
        ]

    def __str__(self) -> str:
        return f"Lead({self.full_name}, {self.status})"

    @property
    def remaining_levels(self) -> int:
        """Purchased level credits not yet consumed, never negative."""
        return max(0, self.levels_purchased_total - self.levels_consumed)

    @property
    def is_cancelled(self) -> bool:
        return self.status == LeadStatus.CANCELLED

    @property
    def rank(self) -> int | None:
        """Pipeline rank of the current status; None for paused or cancelled."""
        return stage_rank(self.status)

    @property
    def display(self):
        """Badge label, colour and next-action hint for the current status."""
        return status_display(self.status)

    def is_at_or_past(self, status: str) -> bool:
        """Whether the lead already sits at or beyond ``status`` in the pipeline."""
        current = self.rank
        target = stage_rank(status)
        if current is None or target is None:
            return False
        return current >= target

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=LeadStatus.LEAD_CREATED,
        target=LeadStatus.TEST_BOOKED,
    )
    def book_test(self):
        """Placement test scheduled (date, time and type are recorded)."""

    @transition(
        field=status,
        source=[LeadStatus.LEAD_CREATED, LeadStatus.TEST_BOOKED],
        target=LeadStatus.TESTED,
    )
    def mark_tested(self):
        """Placement test taken."""

    @transition(
        field=status,
        source=[LeadStatus.LEAD_CREATED, LeadStatus.TEST_BOOKED, LeadStatus.TESTED],
        target=LeadStatus.OFFER_SENT,
    )
    def send_offer(self):
        """Pricing offer sent (bundle or final price is set)."""

    @transition(
        field=status,
        source=[
            LeadStatus.LEAD_CREATED,
            LeadStatus.TEST_BOOKED,
            LeadStatus.TESTED,
            LeadStatus.OFFER_SENT,
            LeadStatus.DEPOSIT_PAID,
        ],
        target=RETURN_VALUE(LeadStatus.DEPOSIT_PAID, LeadStatus.PAID_FULL),
    )
    def settle_payment(self, fully_paid: bool):
        """
        Record that course money covers the offer.

        Args:
            fully_paid: True when the net paid reaches the final price
        """
        return LeadStatus.PAID_FULL if fully_paid else LeadStatus.DEPOSIT_PAID

    @transition(
        field=status,
        source=LeadStatus.PAID_FULL,
        target=LeadStatus.OFFER_SENT,
    )
    def revert_to_offer_sent(self):
        """
        Downgrade after a refund drops the net paid below the final price.

        This is the only regression the pipeline allows.
        """

    @transition(
        field=status,
        source=PIPELINE_STATUSES,
        target=RETURN_VALUE(*PIPELINE_STATUSES),
    )
    def advance_to(self, stage: str):
        """
        Move forward to ``stage``, which must rank above the current status.

        Raises:
            ValueError: If ``stage`` is not strictly further along
        """
        current = stage_rank(self.status)
        target = stage_rank(stage)
        if target is None or current is None or target <= current:
            raise ValueError(f"Cannot advance from '{self.status}' to '{stage}'")
        return stage

    @transition(
        field=status,
        source=PIPELINE_STATUSES,
        target=LeadStatus.READY_TO_START,
    )
    def mark_ready(self):
        """Fully paid, level assigned, allow-listed schedule present."""

    @transition(
        field=status,
        source=NON_CANCELLED_STATUSES,
        target=LeadStatus.WAITING_FOR_ROUND,
    )
    def move_to_waiting(self):
        """Park the lead until the next round opens."""

    @transition(
        field=status,
        source=NON_CANCELLED_STATUSES,
        target=LeadStatus.CANCELLED,
    )
    def cancel(self):
        """Soft-cancel the lead and stamp cancelled_at."""
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=LeadStatus.CANCELLED,
        target=LeadStatus.LEAD_CREATED,
    )
    def reopen(self):
        """Reverse a cancellation."""
        self.cancelled_at = None
