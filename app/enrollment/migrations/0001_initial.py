# Initial schema for leads, their sections, course payments and the ledger

import uuid

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

PAYMENT_METHOD_CHOICES = [
    ("cash", "Cash"),
    ("vodafone_cash", "Vodafone Cash"),
    ("bank_transfer", "Bank Transfer"),
    ("paypal", "PayPal"),
    ("other", "Other"),
]


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def _lead_one_to_one(related_name, help_text):
    return (
        "lead",
        models.OneToOneField(
            help_text=help_text,
            on_delete=django.db.models.deletion.CASCADE,
            related_name=related_name,
            to="enrollment.lead",
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Lead",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                (
                    "full_name",
                    models.CharField(
                        help_text="Full name of the prospective student", max_length=255
                    ),
                ),
                (
                    "phone",
                    models.CharField(
                        help_text="Contact phone number (unique across leads)",
                        max_length=32,
                        unique=True,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("Facebook", "Facebook"),
                            ("WhatsApp", "WhatsApp"),
                            ("Instagram", "Instagram"),
                            ("Admin", "Admin"),
                            ("Referral", "Referral"),
                            ("Walk-in", "Walk-in"),
                            ("Other", "Other"),
                        ],
                        default="Other",
                        help_text="Channel the lead came from",
                        max_length=32,
                    ),
                ),
                (
                    "notes",
                    models.TextField(blank=True, default="", help_text="Free-text operator notes"),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("lead_created", "New Lead"),
                            ("test_booked", "Test Booked"),
                            ("tested", "Tested"),
                            ("offer_sent", "Offer Sent"),
                            ("deposit_paid", "Deposit Paid"),
                            ("paid_full", "Paid in Full"),
                            ("schedule_assigned", "Schedule Assigned"),
                            ("ready_to_start", "Ready to Start"),
                            ("waiting_for_round", "Waiting for Round"),
                            ("paused", "Paused"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="lead_created",
                        help_text="Current pipeline status of the lead (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "cancelled_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the lead was cancelled (set only while cancelled)",
                        null=True,
                    ),
                ),
                (
                    "levels_purchased_total",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of level credits purchased"
                    ),
                ),
                (
                    "levels_consumed",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of level credits already used"
                    ),
                ),
                (
                    "bundle_type",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("single", "Single Level"),
                            ("bundle2", "2-Level Bundle"),
                            ("bundle3", "3-Level Bundle"),
                            ("bundle4", "4-Level Bundle"),
                        ],
                        default="none",
                        help_text="Bundle purchased with the course payment",
                        max_length=16,
                    ),
                ),
                (
                    "high_priority_follow_up",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether the lead needs urgent follow-up",
                    ),
                ),
                (
                    "sent_to_classes",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether the lead was sent to the classes board",
                    ),
                ),
                (
                    "sent_to_classes_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the lead was sent to the classes board",
                        null=True,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Operator who created the lead",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_leads",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Lead",
                "verbose_name_plural": "Leads",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="lead_status_created_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(("cancelled_at__isnull", False), ("status", "cancelled"))
                            | (
                                ~models.Q(("status", "cancelled"))
                                & models.Q(("cancelled_at__isnull", True))
                            )
                        ),
                        name="lead_cancelled_at_matches_status",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerTransaction",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                (
                    "transaction_date",
                    models.DateField(db_index=True, help_text="Calendar day the money moved"),
                ),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[("IN", "In"), ("OUT", "Out")],
                        help_text="Direction of the money movement",
                        max_length=3,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("placement_test", "Placement Test"),
                            ("course_payment", "Course Payment"),
                            ("refund", "Refund"),
                            ("teacher_salary", "Teacher Salary"),
                            ("ads", "Ads"),
                            ("rent", "Rent"),
                            ("software", "Software"),
                            ("moderator", "Moderator"),
                            ("content_creator", "Content Creator"),
                            ("other", "Other"),
                        ],
                        help_text="Category of this transaction",
                        max_length=32,
                    ),
                ),
                ("amount", models.PositiveIntegerField(help_text="Amount moved (always positive)")),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=PAYMENT_METHOD_CHOICES,
                        help_text="How the money moved",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "lead",
                    models.ForeignKey(
                        blank=True,
                        help_text="Lead this transaction belongs to",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="enrollment.lead",
                    ),
                ),
                (
                    "ref_type",
                    models.CharField(
                        blank=True,
                        help_text="Type of the originating entity (e.g. 'lead')",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "ref_id",
                    models.CharField(
                        blank=True,
                        help_text="Id of the originating entity",
                        max_length=64,
                        null=True,
                    ),
                ),
                (
                    "ref_sub_type",
                    models.CharField(
                        blank=True,
                        help_text="Sub-type of the originating event (e.g. 'refund')",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "ref_key",
                    models.CharField(
                        blank=True,
                        help_text="Unique key that prevents duplicate rows for one event",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "notes",
                    models.TextField(
                        blank=True, default="", help_text="Human-readable description"
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Operator who recorded this transaction",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ledger_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ["-transaction_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["lead", "category", "transaction_type"],
                        name="ledger_lead_category_idx",
                    ),
                    models.Index(
                        fields=["transaction_type", "transaction_date"],
                        name="ledger_type_date_idx",
                    ),
                    models.Index(fields=["ref_type", "ref_id"], name="ledger_ref_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="ledger_transaction_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LeadPayment",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("course", "Course"),
                            ("deposit", "Deposit"),
                            ("full_payment", "Full Payment"),
                            ("top_up", "Top-up"),
                        ],
                        default="course",
                        help_text="Kind of course payment",
                        max_length=16,
                    ),
                ),
                ("amount", models.PositiveIntegerField(help_text="Amount received")),
                (
                    "payment_method",
                    models.CharField(
                        choices=PAYMENT_METHOD_CHOICES,
                        help_text="Method used for the payment",
                        max_length=32,
                    ),
                ),
                ("payment_date", models.DateField(help_text="Day the payment was received")),
                ("notes", models.TextField(blank=True, default="", help_text="Operator notes")),
                (
                    "lead",
                    models.ForeignKey(
                        help_text="Lead who made the payment",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="enrollment.lead",
                    ),
                ),
            ],
            options={
                "verbose_name": "Lead Payment",
                "verbose_name_plural": "Lead Payments",
                "ordering": ["payment_date", "created_at"],
                "indexes": [
                    models.Index(
                        fields=["lead", "payment_date"], name="lead_payment_lead_date_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="lead_payment_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Offer",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                _lead_one_to_one("offer", "Lead this offer belongs to"),
                (
                    "bundle_levels",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Number of levels in the bundle (1-4)",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(4),
                        ],
                    ),
                ),
                (
                    "base_price",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Table price for the selected bundle",
                        null=True,
                    ),
                ),
                (
                    "discount_value",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Discount amount, or percentage when discount_type is percent",
                        null=True,
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        blank=True,
                        choices=[("amount", "Amount"), ("percent", "Percent")],
                        default="",
                        help_text="Whether the discount is an amount or a percent",
                        max_length=16,
                    ),
                ),
                (
                    "final_price",
                    models.PositiveIntegerField(
                        blank=True, help_text="Price owed for the course", null=True
                    ),
                ),
            ],
            options={
                "verbose_name": "Offer",
                "verbose_name_plural": "Offers",
            },
        ),
        migrations.CreateModel(
            name="PlacementTest",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                _lead_one_to_one("placement_test", "Lead this placement test belongs to"),
                (
                    "test_date",
                    models.DateField(blank=True, help_text="Scheduled test date", null=True),
                ),
                (
                    "test_time",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Scheduled test time (HH:MM)",
                        max_length=5,
                    ),
                ),
                (
                    "test_type",
                    models.CharField(
                        blank=True,
                        choices=[("in_person", "In Person"), ("online", "Online")],
                        default="",
                        help_text="Test delivery format",
                        max_length=16,
                    ),
                ),
                (
                    "assigned_level",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Level assigned after the test (1-8)",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(8),
                        ],
                    ),
                ),
                (
                    "test_notes",
                    models.TextField(blank=True, default="", help_text="Examiner notes"),
                ),
                (
                    "placement_test_fee",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Fee charged for the placement test",
                        null=True,
                    ),
                ),
                (
                    "placement_test_fee_paid",
                    models.PositiveIntegerField(
                        default=0, help_text="Amount of the placement test fee paid"
                    ),
                ),
                (
                    "placement_test_payment_date",
                    models.DateField(
                        blank=True,
                        help_text="Date the placement test fee was paid",
                        null=True,
                    ),
                ),
                (
                    "placement_test_payment_method",
                    models.CharField(
                        blank=True,
                        choices=PAYMENT_METHOD_CHOICES,
                        default="",
                        help_text="Method used to pay the placement test fee",
                        max_length=32,
                    ),
                ),
            ],
            options={
                "verbose_name": "Placement Test",
                "verbose_name_plural": "Placement Tests",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("assigned_level__isnull", True),
                            models.Q(("assigned_level__gte", 1), ("assigned_level__lte", 8)),
                            _connector="OR",
                        ),
                        name="placement_test_level_1_to_8",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Scheduling",
            fields=[
                _uuid_pk(),
                *_timestamps(),
                _lead_one_to_one("scheduling", "Lead this schedule belongs to"),
                (
                    "expected_round",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Round the lead is expected to join",
                        max_length=64,
                    ),
                ),
                (
                    "class_days",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Class-day pattern (e.g. Sun/Wed)",
                        max_length=32,
                    ),
                ),
                (
                    "class_time",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Class start time (HH:MM)",
                        max_length=5,
                    ),
                ),
                (
                    "start_date",
                    models.DateField(blank=True, help_text="First class date", null=True),
                ),
                (
                    "start_time",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="First class time (HH:MM)",
                        max_length=5,
                    ),
                ),
            ],
            options={
                "verbose_name": "Scheduling",
                "verbose_name_plural": "Scheduling",
            },
        ),
    ]
