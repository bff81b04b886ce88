"""
Project-wide pytest fixtures.

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest
from rest_framework.test import APIClient

TEST_APP_SECRET = "test-app-secret"


@pytest.fixture(autouse=True)
def app_secret(settings):
    """Configure the shared API secret for every test."""
    settings.APP_SECRET = TEST_APP_SECRET
    return TEST_APP_SECRET


@pytest.fixture
def anon_client():
    """API client without the app token."""
    return APIClient()


@pytest.fixture
def api_client(app_secret):
    """API client sending a valid X-App-Token header."""
    client = APIClient()
    client.credentials(HTTP_X_APP_TOKEN=app_secret)
    return client
