"""
Enrollment app configuration.

This app provides the lead enrollment pipeline:
- Lead status state machine (django-fsm)
- Payment and refund ledger
- Cancel workflow and finance reporting
"""

from django.apps import AppConfig


class EnrollmentConfig(AppConfig):
    """Configuration for the enrollment application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "enrollment"
    verbose_name = "Enrollment"
