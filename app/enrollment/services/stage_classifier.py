"""
Stage classifier: the furthest pipeline stage a lead's saved data supports.

Rules, each able to raise the stage (never lower it):

    1. test date + test time                       -> test_booked
    2. assigned level                              -> tested
    3. final price > 0, offer changed in this save -> offer_sent
    4. net paid >= final price > 0                 -> paid_full
       net paid > 0                                -> deposit_paid
    5. class days + time, fully paid, level        -> schedule_assigned
       ... and both allow-listed                   -> ready_to_start

The result is compared with the current status and only an upgrade is
returned. Cancelled and paused leads are never reclassified.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import TYPE_CHECKING

from enrollment.models import PlacementTest, Scheduling
from enrollment.state_machines import LeadStatus, stage_rank

if TYPE_CHECKING:
    from enrollment.context import EnrollmentSettings
    from enrollment.services.payment_aggregator import PaymentSnapshot


# Stages that cannot exist without a positive final price.
PRICED_STAGES = frozenset(
    {LeadStatus.OFFER_SENT, LeadStatus.DEPOSIT_PAID, LeadStatus.PAID_FULL}
)


@dataclass(frozen=True)
class StageFacts:
    """The lead data the classifier looks at."""

    test_date: datetime.date | None = None
    test_time: str = ""
    assigned_level: int | None = None
    final_price: int | None = None
    offer_changed: bool = False
    total_course_paid: int = 0
    class_days: str = ""
    class_time: str = ""

    @classmethod
    def from_lead(cls, lead, snapshot: PaymentSnapshot, offer_changed: bool) -> StageFacts:
        """Read the stored placement test and class slot for a lead."""
        placement = PlacementTest.objects.filter(lead=lead).first()
        scheduling = Scheduling.objects.filter(lead=lead).first()
        return cls(
            test_date=placement.test_date if placement else None,
            test_time=placement.test_time if placement else "",
            assigned_level=placement.assigned_level if placement else None,
            final_price=snapshot.final_price,
            offer_changed=offer_changed,
            total_course_paid=snapshot.total_course_paid,
            class_days=scheduling.class_days if scheduling else "",
            class_time=scheduling.class_time if scheduling else "",
        )

    @property
    def is_fully_paid(self) -> bool:
        final_price = self.final_price or 0
        return final_price > 0 and self.total_course_paid >= final_price


class StageClassifier:
    """Stage computation over StageFacts; no database access."""

    @staticmethod
    def supported_stage(facts: StageFacts, settings: EnrollmentSettings) -> str:
        """Furthest stage the facts support, ignoring the current status."""
        stages = [LeadStatus.LEAD_CREATED]

        if facts.test_date and facts.test_time:
            stages.append(LeadStatus.TEST_BOOKED)

        if facts.assigned_level:
            stages.append(LeadStatus.TESTED)

        if facts.offer_changed and (facts.final_price or 0) > 0:
            stages.append(LeadStatus.OFFER_SENT)

        if facts.is_fully_paid:
            stages.append(LeadStatus.PAID_FULL)
        elif facts.total_course_paid > 0:
            stages.append(LeadStatus.DEPOSIT_PAID)

        if (
            facts.class_days
            and facts.class_time
            and facts.is_fully_paid
            and facts.assigned_level
        ):
            stages.append(LeadStatus.SCHEDULE_ASSIGNED)
            if (
                facts.class_days in settings.allowed_class_days
                and facts.class_time in settings.allowed_class_times
            ):
                stages.append(LeadStatus.READY_TO_START)

        return max(stages, key=stage_rank)

    @classmethod
    def classify(
        cls,
        current_status: str,
        facts: StageFacts,
        settings: EnrollmentSettings,
    ) -> str:
        """
        Return the status the lead should have after a save.

        Equal to ``current_status`` unless the facts support a strictly
        higher stage.
        """
        current_rank = stage_rank(current_status)
        if current_rank is None:
            return current_status

        candidate = cls.supported_stage(facts, settings)
        if stage_rank(candidate) > current_rank:
            return candidate
        return current_status
