"""
Tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
from django.db import OperationalError
from rest_framework.test import APIClient


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self):
        response = APIClient().get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    def test_database_down(self):
        with patch("core.views.connection.cursor", side_effect=OperationalError("down")):
            response = APIClient().get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
