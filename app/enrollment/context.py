"""
Injected operator context for enrollment services.

Services never read the request, the clock or Django settings directly.
Views build an EnrollmentContext once per request and pass it down, which
keeps "today" and the acting role explicit (and fixed) for the whole
operation.

Usage:
    from enrollment.context import EnrollmentContext

    context = EnrollmentContext.from_request(request)
    context.require_admin("cancel")
    CancelWorkflow.execute(lead_id, refund, context)
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings as django_settings
from django.utils import timezone

from enrollment.exceptions import ActionForbiddenError
from enrollment.state_machines import OperatorRole, PaymentMethod

if TYPE_CHECKING:
    from typing import Any


DEFAULT_BUNDLE_PRICES = {1: 1300, 2: 2400, 3: 3300, 4: 4000}
DEFAULT_CLASS_DAYS = ("Sun/Wed", "Sat/Tues", "Mon/Thu")
DEFAULT_CLASS_TIMES = ("07:30", "10:00")


@dataclass(frozen=True)
class EnrollmentSettings:
    """
    Business constants used by the enrollment services.

    Attributes:
        bundle_prices: Base price per bundle size (levels -> amount)
        allowed_class_days: Class-day patterns accepted for ready_to_start
        allowed_class_times: Class start times accepted for ready_to_start
        payment_methods: Methods accepted on every money path
        placement_test_default_fee: Fee set when a test is booked without one
        currency: Display currency for amounts
        moderator_group: Django group whose members act as moderators
    """

    bundle_prices: dict[int, int] = field(default_factory=lambda: dict(DEFAULT_BUNDLE_PRICES))
    allowed_class_days: tuple[str, ...] = DEFAULT_CLASS_DAYS
    allowed_class_times: tuple[str, ...] = DEFAULT_CLASS_TIMES
    payment_methods: tuple[str, ...] = tuple(PaymentMethod.values)
    placement_test_default_fee: int = 100
    currency: str = "EGP"
    moderator_group: str = "moderator"

    @classmethod
    def from_django_settings(cls) -> EnrollmentSettings:
        """Build settings from the ``ENROLLMENT_*`` Django settings."""
        defaults = cls()
        bundle_prices = getattr(django_settings, "ENROLLMENT_BUNDLE_PRICES", None)
        return cls(
            bundle_prices=(
                {int(k): int(v) for k, v in bundle_prices.items()}
                if bundle_prices
                else defaults.bundle_prices
            ),
            allowed_class_days=tuple(
                getattr(django_settings, "ENROLLMENT_ALLOWED_CLASS_DAYS", defaults.allowed_class_days)
            ),
            allowed_class_times=tuple(
                getattr(
                    django_settings, "ENROLLMENT_ALLOWED_CLASS_TIMES", defaults.allowed_class_times
                )
            ),
            payment_methods=tuple(
                getattr(django_settings, "ENROLLMENT_PAYMENT_METHODS", defaults.payment_methods)
            ),
            placement_test_default_fee=getattr(
                django_settings,
                "ENROLLMENT_PLACEMENT_TEST_DEFAULT_FEE",
                defaults.placement_test_default_fee,
            ),
            currency=getattr(django_settings, "ENROLLMENT_CURRENCY", defaults.currency),
            moderator_group=getattr(
                django_settings, "ENROLLMENT_MODERATOR_GROUP", defaults.moderator_group
            ),
        )

    def bundle_price(self, levels: int | None) -> int | None:
        """Return the table price for a bundle size, or None when unknown."""
        if levels is None:
            return None
        return self.bundle_prices.get(levels)


@dataclass(frozen=True)
class EnrollmentContext:
    """
    Who is acting, on which day, under which settings.

    Attributes:
        role: OperatorRole of the acting staff member
        today: Local calendar day used for every date bound in the operation
        settings: EnrollmentSettings in force
        actor_id: Identifier of the acting user, for audit logging
    """

    role: str
    today: datetime.date
    settings: EnrollmentSettings
    actor_id: str | None = None

    @classmethod
    def for_admin(
        cls,
        today: datetime.date | None = None,
        settings: EnrollmentSettings | None = None,
        actor_id: str | None = None,
    ) -> EnrollmentContext:
        """Context for an admin operator (or an internal caller)."""
        return cls(
            role=OperatorRole.ADMIN,
            today=today or timezone.localdate(),
            settings=settings or EnrollmentSettings.from_django_settings(),
            actor_id=actor_id,
        )

    @classmethod
    def from_request(cls, request: Any) -> EnrollmentContext:
        """
        Resolve the operator role for an authenticated request.

        Staff and superusers act as admins; members of the moderator group
        act as moderators. Anyone else is refused.

        Raises:
            ActionForbiddenError: If the user has no enrollment role
        """
        settings = EnrollmentSettings.from_django_settings()
        user = request.user

        if user.is_superuser or user.is_staff:
            role = OperatorRole.ADMIN
        elif user.groups.filter(name=settings.moderator_group).exists():
            role = OperatorRole.MODERATOR
        else:
            raise ActionForbiddenError(
                "User has no enrollment role",
                details={"user_id": str(user.pk)},
            )

        return cls(
            role=role,
            today=timezone.localdate(),
            settings=settings,
            actor_id=str(user.pk),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == OperatorRole.ADMIN

    def require_admin(self, action: str) -> None:
        """
        Refuse admin-only actions for moderators.

        Raises:
            ActionForbiddenError: If the operator is not an admin
        """
        if not self.is_admin:
            raise ActionForbiddenError(
                f"Role '{self.role}' may not run '{action}'",
                details={"action": action, "role": str(self.role)},
            )
