"""
Tests for LeadIntakeService.
"""

import pytest

from enrollment.exceptions import LeadValidationError, PhoneAlreadyExistsError
from enrollment.models import Lead
from enrollment.services.lead_intake import LeadIntakeRequest, LeadIntakeService, normalize_source
from enrollment.state_machines import LeadSource, LeadStatus
from enrollment.tests.factories import LeadFactory


@pytest.mark.django_db
class TestCreate:
    def test_creates_new_lead(self, moderator_context):
        lead = LeadIntakeService.create(
            LeadIntakeRequest(full_name=" Sara Ali ", phone="01099990000", source="Facebook"),
            moderator_context,
        )

        assert lead.full_name == "Sara Ali"
        assert lead.status == LeadStatus.LEAD_CREATED
        assert lead.source == LeadSource.FACEBOOK

    @pytest.mark.parametrize(
        "request_kwargs,code",
        [
            ({"phone": "01099990000"}, "full_name_required"),
            ({"full_name": "Sara Ali", "phone": "  "}, "phone_required"),
        ],
    )
    def test_required_fields(self, admin_context, request_kwargs, code):
        with pytest.raises(LeadValidationError) as exc_info:
            LeadIntakeService.create(LeadIntakeRequest(**request_kwargs), admin_context)

        assert exc_info.value.error_code == code

    def test_duplicate_phone_points_to_existing_lead(self, admin_context):
        existing = LeadFactory(phone="01099990000")

        with pytest.raises(PhoneAlreadyExistsError) as exc_info:
            LeadIntakeService.create(
                LeadIntakeRequest(full_name="Other", phone="01099990000"), admin_context
            )

        assert exc_info.value.details == {"existing_lead_id": str(existing.id)}
        assert Lead.objects.count() == 1


class TestNormalizeSource:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("WhatsApp", LeadSource.WHATSAPP),
            ("whatsapp", LeadSource.OTHER),
            ("carrier pigeon", LeadSource.OTHER),
            ("", LeadSource.OTHER),
            (None, LeadSource.OTHER),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_source(raw) == expected
