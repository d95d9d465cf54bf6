"""
Pytest fixtures for enrollment API tests.

Provides operators for each role and authenticated API clients.
Domain fixtures (leads in various states, contexts) come from
enrollment/conftest.py.
"""

import pytest
from rest_framework.test import APIClient

from enrollment.tests.factories import ModeratorFactory, StaffUserFactory, UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def staff_user(db):
    """Staff user; acts as an admin."""
    return StaffUserFactory()


@pytest.fixture
def moderator_user(db):
    """Member of the moderator group."""
    return ModeratorFactory()


@pytest.fixture
def outsider_user(db):
    """Authenticated user with no enrollment role."""
    return UserFactory()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def moderator_client(moderator_user):
    client = APIClient()
    client.force_authenticate(user=moderator_user)
    return client


@pytest.fixture
def outsider_client(outsider_user):
    client = APIClient()
    client.force_authenticate(user=outsider_user)
    return client
