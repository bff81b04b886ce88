"""
Shared-secret authentication for the API.

Every API request must carry the configured secret in the ``X-App-Token``
header. There are no user accounts; a valid token authenticates the
caller as "the application".

Classes:
    SharedSecretAuthentication: Validates the X-App-Token header
    HasAppToken: Permission requiring a validated token

Behaviour:
    - APP_SECRET unset: every request fails with 500 SERVER_MISCONFIGURED
    - Header missing: 401 NOT_AUTHENTICATED
    - Header wrong: 401 AUTHENTICATION_FAILED

Public endpoints (health check, OpenAPI schema, docs) opt out with
``authentication_classes=[]`` and ``permission_classes=[AllowAny]``.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework import authentication, exceptions, permissions

from core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

logger = logging.getLogger(__name__)

APP_TOKEN_HEADER = "X-App-Token"


class SharedSecretAuthentication(authentication.BaseAuthentication):
    """
    Authenticate requests that present the shared application secret.

    On success ``request.auth`` holds the token and ``request.user`` is
    None (the API has no per-user identity).
    """

    header_name = APP_TOKEN_HEADER

    def authenticate(self, request: Request) -> tuple[None, str] | None:
        secret = getattr(settings, "APP_SECRET", "")
        if not secret:
            logger.error("APP_SECRET is not configured, refusing API request")
            raise ConfigurationError("Server misconfigured")

        token = request.headers.get(self.header_name)
        if not token:
            return None

        # Constant-time comparison
        if not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
            logger.warning(
                "Rejected request with invalid app token",
                extra={"path": request.path},
            )
            raise exceptions.AuthenticationFailed("Invalid app token")

        return (None, token)

    def authenticate_header(self, request: Request) -> str:
        """Returning a value makes DRF answer 401 rather than 403."""
        return self.header_name


class HasAppToken(permissions.BasePermission):
    """Allows access only to requests authenticated with the app token."""

    message = "Missing app token."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return request.auth is not None
