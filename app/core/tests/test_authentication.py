"""
Tests for shared-secret authentication.

Every API request must present X-App-Token; an unset secret refuses all
traffic rather than letting it through.
"""

import pytest
from rest_framework import status

from core.authentication import APP_TOKEN_HEADER


@pytest.mark.django_db
class TestSharedSecretAuthentication:
    def test_missing_header_is_401(self, anon_client):
        response = anon_client.get("/api/debts/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_code"] == "NOT_AUTHENTICATED"
        assert response["WWW-Authenticate"] == APP_TOKEN_HEADER

    def test_wrong_token_is_401(self, anon_client):
        anon_client.credentials(HTTP_X_APP_TOKEN="guess")

        response = anon_client.get("/api/debts/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_code"] == "AUTHENTICATION_FAILED"

    def test_correct_token_passes(self, api_client):
        response = api_client.get("/api/debts/")

        assert response.status_code == status.HTTP_200_OK

    def test_unset_secret_is_server_misconfigured(self, api_client, settings):
        """
        With no secret configured nothing gets in, not even a matching
        empty header.
        """
        settings.APP_SECRET = ""

        response = api_client.get("/api/debts/")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data["error_code"] == "SERVER_MISCONFIGURED"

    def test_public_endpoints_skip_token(self, anon_client, db):
        assert anon_client.get("/health/").status_code == status.HTTP_200_OK
        assert anon_client.get("/api/schema/").status_code == status.HTTP_200_OK
