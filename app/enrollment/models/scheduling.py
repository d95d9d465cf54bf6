"""
Class scheduling preferences for a lead.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Scheduling(UUIDPrimaryKeyMixin, BaseModel):
    """
    Round and class slot chosen for a lead.

    Class days and time are checked against the allow-lists in
    EnrollmentSettings before a lead may become ready to start.
    """

    lead = models.OneToOneField(
        "enrollment.Lead",
        on_delete=models.CASCADE,
        related_name="scheduling",
        help_text="Lead this schedule belongs to",
    )
    expected_round = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Round the lead is expected to join",
    )
    class_days = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="Class-day pattern (e.g. Sun/Wed)",
    )
    class_time = models.CharField(
        max_length=5,
        blank=True,
        default="",
        help_text="Class start time (HH:MM)",
    )
    start_date = models.DateField(
        null=True,
        blank=True,
        help_text="First class date",
    )
    start_time = models.CharField(
        max_length=5,
        blank=True,
        default="",
        help_text="First class time (HH:MM)",
    )

    class Meta:
        verbose_name = "Scheduling"
        verbose_name_plural = "Scheduling"

    def __str__(self) -> str:
        return f"Scheduling(lead={self.lead_id}, {self.class_days} {self.class_time})"

    @property
    def has_slot(self) -> bool:
        """Both class days and class time are present."""
        return bool(self.class_days and self.class_time)
